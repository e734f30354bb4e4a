"""Runtime configuration loaded from config.json."""

from __future__ import annotations

import json
import math
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from .exceptions import ConfigError
from .pagerank import DEFAULT_EDGE_WEIGHT, EdgeEvaluator, EdgeWeight, weights_to_edge_evaluator

DIRECTORY_ENV_VAR = "SOURCECRED_DIRECTORY"


def default_sourcecred_directory() -> Path:
    return Path(tempfile.gettempdir()) / "sourcecred"


@dataclass(frozen=True)
class Config:
    """Runtime configuration for the explorer."""

    sourcecred_directory: Path
    assets_root: Path
    total_score_node_prefix: str = ""
    top_n: int = 20
    log_file: Path = field(default_factory=lambda: Path("logs/cred-explorer.log"))
    edge_weights: tuple[tuple[str, EdgeWeight], ...] = ()
    default_edge_weight: EdgeWeight = DEFAULT_EDGE_WEIGHT

    @classmethod
    def from_dict(cls, payload: dict) -> Config:
        """Create a Config object from a raw dictionary.

        The SOURCECRED_DIRECTORY environment variable overrides the
        sourcecred_directory entry.
        """
        directory_raw = os.environ.get(DIRECTORY_ENV_VAR) or payload.get("sourcecred_directory")
        sourcecred_directory = (
            Path(os.path.expanduser(directory_raw)).resolve()
            if directory_raw
            else default_sourcecred_directory()
        )
        assets_raw = payload.get("assets_root")
        assets_root = (
            Path(os.path.expanduser(assets_raw)).resolve() if assets_raw else sourcecred_directory
        )

        top_n = int(payload.get("top_n", 20))
        if top_n <= 0:
            raise ValueError(f"top_n must be positive, got {top_n}")

        weights_raw = payload.get("edge_weights", {})
        if not isinstance(weights_raw, dict):
            raise TypeError("edge_weights must be an object")
        edge_weights = tuple(
            (str(plugin), _parse_edge_weight(plugin, value))
            for plugin, value in sorted(weights_raw.items())
        )
        default_raw = payload.get("default_edge_weight")
        default_edge_weight = (
            _parse_edge_weight("default", default_raw)
            if default_raw is not None
            else DEFAULT_EDGE_WEIGHT
        )

        return cls(
            sourcecred_directory=sourcecred_directory,
            assets_root=assets_root,
            total_score_node_prefix=str(payload.get("total_score_node_prefix", "")),
            top_n=top_n,
            log_file=Path(os.path.expanduser(payload.get("log_file", "logs/cred-explorer.log"))),
            edge_weights=edge_weights,
            default_edge_weight=default_edge_weight,
        )

    def edge_evaluator(self) -> EdgeEvaluator:
        """Build the edge evaluator described by the configured weights."""
        return weights_to_edge_evaluator(dict(self.edge_weights), self.default_edge_weight)


def _parse_edge_weight(name: str, value: object) -> EdgeWeight:
    """Parse [to_weight, fro_weight] or {"to": .., "fro": ..} into an EdgeWeight."""
    if isinstance(value, dict):
        to_weight, fro_weight = value.get("to", 1.0), value.get("fro", 1.0)
    elif isinstance(value, (list, tuple)) and len(value) == 2:
        to_weight, fro_weight = value
    else:
        raise ValueError(f"edge weight for {name!r} must be [to, fro] or an object, got {value!r}")
    weight = EdgeWeight(to_weight=float(to_weight), fro_weight=float(fro_weight))
    if not (math.isfinite(weight.to_weight) and math.isfinite(weight.fro_weight)):
        raise ValueError(f"edge weight for {name!r} must be finite, got {weight}")
    if weight.to_weight < 0 or weight.fro_weight < 0:
        raise ValueError(f"edge weight for {name!r} must not be negative, got {weight}")
    return weight


def load_config(path: Path | None) -> Config:
    """Load configuration from the provided path, or defaults if None.

    Raises:
        ConfigError: If the file cannot be read or holds invalid values
    """
    if path is None:
        return Config.from_dict({})
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
        if not isinstance(data, dict):
            raise TypeError("config root must be an object")
        return Config.from_dict(data)
    except (OSError, json.JSONDecodeError, TypeError, ValueError) as err:
        raise ConfigError(f"Invalid config {path}: {err}") from err
