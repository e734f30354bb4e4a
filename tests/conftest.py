"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from cred_explorer.address import Address
from cred_explorer.assets import Assets
from cred_explorer.graph import Edge, Graph
from cred_explorer.loader import GraphWithAdapters, graph_path
from cred_explorer.pagerank import EdgeWeight
from cred_explorer.repo import Repo


def unit_evaluator(edge: Edge) -> EdgeWeight:
    """Weight every edge equally in both directions."""
    return EdgeWeight(to_weight=1.0, fro_weight=1.0)


def other_evaluator(edge: Edge) -> EdgeWeight:
    return EdgeWeight(to_weight=2.0, fro_weight=0.5)


def node(plugin: str, local_id: str, repo: str = "example-repo") -> Address:
    return Address(owner_plugin=plugin, owner_repo=repo, local_id=local_id)


def build_sample_graph() -> Graph:
    """Two users authoring a pull request that references an issue."""
    alice = node("github", "user-alice")
    bob = node("github", "user-bob")
    pull = node("github", "pull-1")
    issue = node("github", "issue-2")
    commit = node("git", "commit-abc")

    graph = Graph()
    for address in (alice, bob, pull, issue, commit):
        graph.add_node(address, {"title": address.local_id})
    graph.add_edge(node("github", "authors-1"), alice, pull)
    graph.add_edge(node("github", "authors-2"), bob, issue)
    graph.add_edge(node("github", "references-1"), pull, issue)
    graph.add_edge(node("git", "has-parent-1"), commit, pull)
    return graph


def write_graph(root: Path, repo: Repo, graph: Graph) -> Path:
    """Store a graph where the default loader expects it."""
    path = graph_path(Assets(root=root), repo)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(graph.to_json()), encoding="utf-8")
    return path


class ControlledCall:
    """Async collaborator whose calls block until the test resolves them."""

    def __init__(self):
        self.calls: list[tuple] = []
        self.futures: list[asyncio.Future] = []

    async def __call__(self, *args):
        future = asyncio.get_running_loop().create_future()
        self.calls.append(args)
        self.futures.append(future)
        return await future

    def resolve(self, value, index: int = -1) -> None:
        self.futures[index].set_result(value)

    def fail(self, error: BaseException, index: int = -1) -> None:
        self.futures[index].set_exception(error)


@pytest.fixture
def repo() -> Repo:
    return Repo(owner="sourcecred", name="example-github")


@pytest.fixture
def other_repo() -> Repo:
    return Repo(owner="sourcecred", name="example-git")


@pytest.fixture
def assets(tmp_path) -> Assets:
    return Assets(root=tmp_path)


@pytest.fixture
def sample_graph() -> Graph:
    return build_sample_graph()


@pytest.fixture
def dataset(sample_graph) -> GraphWithAdapters:
    return GraphWithAdapters(graph=sample_graph, adapters=("git", "github"))
