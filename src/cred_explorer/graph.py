"""Address-keyed graph model.

Nodes and edges are identified by their encoded addresses. Adjacency is kept in
a networkx MultiDiGraph so several edges may connect the same pair of nodes.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

import networkx as nx

from .address import Address, address_to_string, string_to_address
from .exceptions import GraphError

logger = logging.getLogger(__name__)

GRAPH_JSON_VERSION = "0.1.0"


@dataclass(frozen=True, eq=True)
class Node:
    """A graph node and its plugin-defined payload."""

    address: Address
    payload: Any = None


@dataclass(frozen=True, eq=True)
class Edge:
    """A directed edge from src to dst."""

    address: Address
    src: Address
    dst: Address
    payload: Any = None


class Graph:
    """Directed multigraph whose entities are keyed by address."""

    def __init__(self) -> None:
        self._graph = nx.MultiDiGraph()
        self._edges: dict[str, Edge] = {}

    def add_node(self, address: Address, payload: Any = None) -> Graph:
        """Add a node; re-adding an identical node is a no-op.

        Raises:
            GraphError: If a different node already uses the address
        """
        key = address_to_string(address)
        node = Node(address=address, payload=payload)
        if key in self._graph:
            if self._graph.nodes[key]["node"] != node:
                raise GraphError(f"Conflict: node {key} already exists with another payload")
            return self
        self._graph.add_node(key, node=node)
        return self

    def add_edge(
        self, address: Address, src: Address, dst: Address, payload: Any = None
    ) -> Graph:
        """Add an edge between two existing nodes.

        Raises:
            GraphError: On a conflicting duplicate or a missing endpoint
        """
        key = address_to_string(address)
        edge = Edge(address=address, src=src, dst=dst, payload=payload)
        existing = self._edges.get(key)
        if existing is not None:
            if existing != edge:
                raise GraphError(f"Conflict: edge {key} already exists with other contents")
            return self
        src_key = address_to_string(src)
        dst_key = address_to_string(dst)
        for endpoint in (src_key, dst_key):
            if endpoint not in self._graph:
                raise GraphError(f"Edge {key} refers to missing node {endpoint}")
        self._graph.add_edge(src_key, dst_key, key=key)
        self._edges[key] = edge
        return self

    def has_node(self, address: Address) -> bool:
        return address_to_string(address) in self._graph

    def node(self, address: Address) -> Node | None:
        key = address_to_string(address)
        if key not in self._graph:
            return None
        return self._graph.nodes[key]["node"]

    def edge(self, address: Address) -> Edge | None:
        return self._edges.get(address_to_string(address))

    def nodes(self, prefix: str = "") -> Iterator[Address]:
        """Yield node addresses whose encoded form starts with prefix."""
        for key, data in self._graph.nodes(data=True):
            if key.startswith(prefix):
                yield data["node"].address

    def edges(self) -> Iterator[Edge]:
        yield from self._edges.values()

    def in_edges(self, address: Address) -> Iterator[Edge]:
        for _, _, key in self._graph.in_edges(address_to_string(address), keys=True):
            yield self._edges[key]

    def out_edges(self, address: Address) -> Iterator[Edge]:
        for _, _, key in self._graph.out_edges(address_to_string(address), keys=True):
            yield self._edges[key]

    @property
    def node_count(self) -> int:
        return self._graph.number_of_nodes()

    @property
    def edge_count(self) -> int:
        return len(self._edges)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Graph):
            return NotImplemented
        if self._edges != other._edges:
            return False
        mine = {key: data["node"] for key, data in self._graph.nodes(data=True)}
        theirs = {key: data["node"] for key, data in other._graph.nodes(data=True)}
        return mine == theirs

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Graph(nodes={self.node_count}, edges={self.edge_count})"

    def to_json(self) -> dict:
        """Export to a JSON-serializable dict with sorted keys."""
        nodes = sorted(
            (
                {"address": key, "payload": data["node"].payload}
                for key, data in self._graph.nodes(data=True)
            ),
            key=lambda entry: entry["address"],
        )
        edges = [
            {
                "address": key,
                "src": address_to_string(edge.src),
                "dst": address_to_string(edge.dst),
                "payload": edge.payload,
            }
            for key, edge in sorted(self._edges.items())
        ]
        return {"version": GRAPH_JSON_VERSION, "nodes": nodes, "edges": edges}

    @classmethod
    def from_json(cls, data: dict) -> Graph:
        """Rebuild a graph from to_json output.

        Raises:
            GraphError: On a version mismatch or malformed entries
        """
        version = data.get("version")
        if version != GRAPH_JSON_VERSION:
            raise GraphError(
                f"Unsupported graph version {version!r}, expected {GRAPH_JSON_VERSION!r}"
            )
        graph = cls()
        try:
            for entry in data.get("nodes", []):
                graph.add_node(string_to_address(entry["address"]), entry.get("payload"))
            for entry in data.get("edges", []):
                graph.add_edge(
                    string_to_address(entry["address"]),
                    string_to_address(entry["src"]),
                    string_to_address(entry["dst"]),
                    entry.get("payload"),
                )
        except (KeyError, TypeError) as err:
            raise GraphError(f"Malformed graph entry: {err}") from err

        logger.debug(
            "Graph parsed",
            extra={"extra_context": {"nodes": graph.node_count, "edges": graph.edge_count}},
        )
        return graph
