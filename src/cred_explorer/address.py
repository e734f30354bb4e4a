"""Address codec for graph entities.

An address names a node or edge by the plugin that owns it, the repository it
belongs to, and an id local to that plugin. Encoded addresses are used as map
keys throughout the graph and the score decomposition.
"""

from __future__ import annotations

import json
from dataclasses import dataclass

from .exceptions import AddressValidationError

DELIMITER = "$"


@dataclass(frozen=True)
class Address:
    """Structured identifier of a graph entity."""

    owner_plugin: str
    owner_repo: str
    local_id: str


def address_to_string(address: Address) -> str:
    """Encode an address as a single delimited string.

    Raises:
        AddressValidationError: If any field contains the delimiter
    """
    for field_name in ("owner_plugin", "owner_repo", "local_id"):
        value = getattr(address, field_name)
        if DELIMITER in value:
            raise AddressValidationError(
                f'address.{field_name} must not include "{DELIMITER}": {json.dumps(value)}'
            )
    return DELIMITER.join((address.owner_plugin, address.owner_repo, address.local_id))


def string_to_address(string: str) -> Address:
    """Decode a string produced by address_to_string.

    Raises:
        AddressValidationError: Unless the string holds exactly two delimiters
    """
    parts = string.split(DELIMITER)
    if len(parts) != 3:
        raise AddressValidationError(
            f'Input should have exactly two "{DELIMITER}"s: {json.dumps(string)}'
        )
    owner_plugin, owner_repo, local_id = parts
    return Address(owner_plugin=owner_plugin, owner_repo=owner_repo, local_id=local_id)
