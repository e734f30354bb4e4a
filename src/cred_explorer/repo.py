"""Repository identifiers of the form OWNER/NAME."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass

from .exceptions import RepoIdValidationError

_OWNER_PATTERN = re.compile(r"^[A-Za-z0-9-]+$")
_NAME_PATTERN = re.compile(r"^[A-Za-z0-9-._]+$")


@dataclass(frozen=True)
class Repo:
    """A GitHub-style repository identifier."""

    owner: str
    name: str

    def __post_init__(self) -> None:
        if not _OWNER_PATTERN.match(self.owner):
            raise RepoIdValidationError(f"Invalid repository owner: {json.dumps(self.owner)}")
        if not _NAME_PATTERN.match(self.name):
            raise RepoIdValidationError(f"Invalid repository name: {json.dumps(self.name)}")
        if self.name in (".", ".."):
            raise RepoIdValidationError(f"Invalid repository name: {json.dumps(self.name)}")

    def __str__(self) -> str:
        return repo_id_to_string(self)


def repo_id_to_string(repo: Repo) -> str:
    return f"{repo.owner}/{repo.name}"


def string_to_repo_id(string: str) -> Repo:
    """Parse OWNER/NAME into a Repo.

    Raises:
        RepoIdValidationError: If the string is not a valid repository id
    """
    parts = string.split("/")
    if len(parts) != 2:
        raise RepoIdValidationError(f"Invalid repo string: {json.dumps(string)}")
    owner, name = parts
    return Repo(owner=owner, name=name)
