"""Default dataset loader.

Reads the graph previously stored for a repository and bundles it with the
names of the plugins that contributed to it.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path

from .assets import Assets
from .exceptions import DatasetNotFoundError, GraphError
from .graph import Graph
from .repo import Repo, repo_id_to_string

logger = logging.getLogger(__name__)

GRAPH_FILENAME = "graph.json"


@dataclass(frozen=True)
class GraphWithAdapters:
    """A loaded graph plus the plugins whose data it contains."""

    graph: Graph
    adapters: tuple[str, ...]


def graph_path(assets: Assets, repo: Repo) -> Path:
    """Return where the graph for a repository is stored."""
    return assets.resolve(f"/api/v1/data/data/{repo.owner}/{repo.name}/{GRAPH_FILENAME}")


def _read_graph(path: Path) -> Graph:
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except FileNotFoundError as err:
        raise DatasetNotFoundError(f"No graph data at {path}") from err
    except json.JSONDecodeError as err:
        raise GraphError(f"Corrupted graph file {path}: {err}") from err
    return Graph.from_json(data)


async def load_graph_with_adapters(assets: Assets, repo: Repo) -> GraphWithAdapters:
    """Load the stored graph for a repository.

    Raises:
        DatasetNotFoundError: If the repository has not been loaded
        GraphError: If the stored graph is corrupted
    """
    path = graph_path(assets, repo)
    logger.info(
        "Loading graph",
        extra={"extra_context": {"repo": repo_id_to_string(repo), "path": str(path)}},
    )
    graph = await asyncio.to_thread(_read_graph, path)
    adapters = tuple(sorted({address.owner_plugin for address in graph.nodes()}))
    return GraphWithAdapters(graph=graph, adapters=adapters)
