"""PageRank scoring over an address-keyed graph.

This module provides the default scorer used by the state machine. Each edge is
turned into two Markov-chain connections: a forward one weighted by the edge's
to_weight and a backward one weighted by its fro_weight. Every node also gets a
synthetic self-loop so that nodes without edges still have a valid transition
distribution. The stationary distribution is found by power iteration and then
decomposed into per-connection contributions for each node.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum

from .address import Address, address_to_string, string_to_address
from .exceptions import ScoringError
from .graph import Edge, Graph

logger = logging.getLogger(__name__)

DEFAULT_TOTAL_SCORE = 1000.0
DEFAULT_MAX_ITERATIONS = 255
DEFAULT_CONVERGENCE_THRESHOLD = 1e-7
DEFAULT_SYNTHETIC_LOOP_WEIGHT = 1e-3


@dataclass(frozen=True)
class EdgeWeight:
    """Weights applied to an edge in the forward and backward directions."""

    to_weight: float
    fro_weight: float


EdgeEvaluator = Callable[[Edge], EdgeWeight]

DEFAULT_EDGE_WEIGHT = EdgeWeight(to_weight=1.0, fro_weight=1.0)


def weights_to_edge_evaluator(
    weights: Mapping[str, EdgeWeight], default: EdgeWeight = DEFAULT_EDGE_WEIGHT
) -> EdgeEvaluator:
    """Build an evaluator that weights edges by the plugin owning them.

    Args:
        weights: Mapping of plugin name to edge weight
        default: Weight for edges whose plugin has no entry

    Returns:
        Edge evaluator function
    """
    by_plugin = dict(weights)

    def evaluate(edge: Edge) -> EdgeWeight:
        return by_plugin.get(edge.address.owner_plugin, default)

    return evaluate


@dataclass(frozen=True)
class PagerankOptions:
    """Options for a single scoring run."""

    total_score_node_prefix: str
    """Encoded-address prefix of the nodes whose scores sum to total_score"""

    verbose: bool = False
    total_score: float = DEFAULT_TOTAL_SCORE
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    convergence_threshold: float = DEFAULT_CONVERGENCE_THRESHOLD
    synthetic_loop_weight: float = DEFAULT_SYNTHETIC_LOOP_WEIGHT

    def __post_init__(self) -> None:
        if self.max_iterations <= 0:
            raise ValueError(f"max_iterations must be positive, got {self.max_iterations}")
        if self.convergence_threshold <= 0:
            raise ValueError(
                f"convergence_threshold must be positive, got {self.convergence_threshold}"
            )
        if self.synthetic_loop_weight <= 0:
            raise ValueError(
                f"synthetic_loop_weight must be positive, got {self.synthetic_loop_weight}"
            )


class ConnectionKind(Enum):
    """Direction in which score reaches a node through a connection."""

    IN_EDGE = "in_edge"
    OUT_EDGE = "out_edge"
    SYNTHETIC_LOOP = "synthetic_loop"


@dataclass(frozen=True)
class ScoredConnection:
    """Score flowing into a node from one adjacent node."""

    kind: ConnectionKind
    edge: Edge | None
    source: Address
    connection_score: float


@dataclass(frozen=True)
class NodeScoreDecomposition:
    """A node's score and the connections it came through, largest first."""

    score: float
    scored_connections: tuple[ScoredConnection, ...]


@dataclass(frozen=True)
class PagerankNodeDecomposition:
    """Score decomposition of every node, keyed by encoded address."""

    nodes: Mapping[str, NodeScoreDecomposition]

    def __len__(self) -> int:
        return len(self.nodes)

    def __getitem__(self, address: Address) -> NodeScoreDecomposition:
        return self.nodes[address_to_string(address)]

    def ranked(self) -> list[tuple[str, NodeScoreDecomposition]]:
        """Return (encoded address, decomposition) pairs, highest score first."""
        return sorted(self.nodes.items(), key=lambda item: (-item[1].score, item[0]))


@dataclass(frozen=True)
class _Connection:
    kind: ConnectionKind
    edge: Edge | None
    source: int
    weight: float


def _build_connections(
    graph: Graph, keys: list[str], evaluator: EdgeEvaluator, loop_weight: float
) -> tuple[list[list[_Connection]], list[float]]:
    """Return the inbound connections of every node and every node's total out-weight."""
    index = {key: i for i, key in enumerate(keys)}
    inbound: list[list[_Connection]] = [
        [_Connection(ConnectionKind.SYNTHETIC_LOOP, None, i, loop_weight)]
        for i in range(len(keys))
    ]
    out_weight = [loop_weight] * len(keys)

    for edge in graph.edges():
        weight = evaluator(edge)
        if not (math.isfinite(weight.to_weight) and math.isfinite(weight.fro_weight)):
            raise ScoringError(
                f"Edge {address_to_string(edge.address)} has a non-finite weight: {weight}"
            )
        if weight.to_weight < 0 or weight.fro_weight < 0:
            raise ScoringError(
                f"Edge {address_to_string(edge.address)} has a negative weight: {weight}"
            )
        src = index[address_to_string(edge.src)]
        dst = index[address_to_string(edge.dst)]
        inbound[dst].append(_Connection(ConnectionKind.IN_EDGE, edge, src, weight.to_weight))
        inbound[src].append(_Connection(ConnectionKind.OUT_EDGE, edge, dst, weight.fro_weight))
        out_weight[src] += weight.to_weight
        out_weight[dst] += weight.fro_weight

    return inbound, out_weight


def compute_pagerank(
    graph: Graph, edge_evaluator: EdgeEvaluator, options: PagerankOptions
) -> PagerankNodeDecomposition:
    """Run PageRank synchronously and decompose the resulting scores.

    Raises:
        ScoringError: If the graph is empty, a weight is negative, or no node
            matches the total score prefix
    """
    keys = sorted(address_to_string(address) for address in graph.nodes())
    if not keys:
        raise ScoringError("Cannot run pagerank on an empty graph")

    start_time = time.perf_counter()
    inbound, out_weight = _build_connections(
        graph, keys, edge_evaluator, options.synthetic_loop_weight
    )

    addresses = [string_to_address(key) for key in keys]
    size = len(keys)
    distribution = [1.0 / size] * size
    delta = float("inf")
    iterations = 0
    while iterations < options.max_iterations and delta >= options.convergence_threshold:
        updated = [
            sum(distribution[c.source] * c.weight / out_weight[c.source] for c in connections)
            for connections in inbound
        ]
        delta = max(abs(new - old) for new, old in zip(updated, distribution))
        distribution = updated
        iterations += 1

    prefix = options.total_score_node_prefix
    prefix_total = sum(distribution[i] for i, key in enumerate(keys) if key.startswith(prefix))
    if prefix_total <= 0:
        raise ScoringError(
            f"No score to normalize against for prefix {options.total_score_node_prefix!r}"
        )
    scale = options.total_score / prefix_total

    nodes: dict[str, NodeScoreDecomposition] = {}
    for i, key in enumerate(keys):
        scored = [
            ScoredConnection(
                kind=c.kind,
                edge=c.edge,
                source=addresses[c.source],
                connection_score=distribution[c.source] * c.weight / out_weight[c.source] * scale,
            )
            for c in inbound[i]
        ]
        scored.sort(key=lambda sc: -sc.connection_score)
        nodes[key] = NodeScoreDecomposition(
            score=distribution[i] * scale, scored_connections=tuple(scored)
        )

    if options.verbose:
        logger.info(
            "Pagerank finished",
            extra={
                "extra_context": {
                    "nodes": size,
                    "edges": graph.edge_count,
                    "iterations": iterations,
                    "final_delta": delta,
                    "converged": delta < options.convergence_threshold,
                    "duration_ms": round((time.perf_counter() - start_time) * 1000, 2),
                }
            },
        )
    return PagerankNodeDecomposition(nodes=nodes)


async def pagerank(
    graph: Graph, edge_evaluator: EdgeEvaluator, options: PagerankOptions
) -> PagerankNodeDecomposition:
    """Run PageRank in a worker thread so the event loop stays responsive."""
    return await asyncio.to_thread(compute_pagerank, graph, edge_evaluator, options)
