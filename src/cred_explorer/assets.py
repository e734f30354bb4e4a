"""Resolution of asset-relative paths onto a data root."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Assets:
    """Location of the static data served alongside the explorer."""

    root: Path

    def resolve(self, path: str) -> Path:
        """Resolve an asset path such as "/api/v1/data" against the root."""
        return self.root / path.lstrip("/")
