"""Tests for the PageRank scorer."""

from __future__ import annotations

import logging

import pytest

from cred_explorer.exceptions import ScoringError
from cred_explorer.graph import Edge, Graph
from cred_explorer.pagerank import (
    ConnectionKind,
    EdgeWeight,
    PagerankOptions,
    compute_pagerank,
    pagerank,
    weights_to_edge_evaluator,
)

from conftest import build_sample_graph, node, unit_evaluator


def _connected_graph() -> Graph:
    """A triangle with a tail; aperiodic so power iteration converges."""
    a, b, c, d = (node("github", name) for name in "abcd")
    graph = Graph()
    for address in (a, b, c, d):
        graph.add_node(address)
    graph.add_edge(node("github", "ab"), a, b)
    graph.add_edge(node("github", "bc"), b, c)
    graph.add_edge(node("github", "ca"), c, a)
    graph.add_edge(node("github", "cd"), c, d)
    return graph


class TestPagerankOptions:
    """Tests for option validation."""

    def test_defaults(self):
        options = PagerankOptions(total_score_node_prefix="")
        assert options.verbose is False
        assert options.total_score == 1000.0
        assert options.max_iterations == 255

    @pytest.mark.parametrize(
        "field_name", ["max_iterations", "convergence_threshold", "synthetic_loop_weight"]
    )
    def test_rejects_non_positive(self, field_name):
        with pytest.raises(ValueError, match=field_name):
            PagerankOptions(total_score_node_prefix="", **{field_name: 0})


class TestWeightsToEdgeEvaluator:
    """Tests for plugin-keyed edge evaluators."""

    def test_uses_plugin_weight_or_default(self):
        evaluator = weights_to_edge_evaluator(
            {"git": EdgeWeight(2.0, 0.5)}, default=EdgeWeight(1.0, 0.25)
        )
        a, b = node("git", "a"), node("github", "b")

        assert evaluator(Edge(node("git", "e"), a, b)) == EdgeWeight(2.0, 0.5)
        assert evaluator(Edge(node("github", "e"), a, b)) == EdgeWeight(1.0, 0.25)


class TestComputePagerank:
    """Tests for the synchronous scorer."""

    def test_symmetric_pair_scores_equally(self):
        a, b = node("github", "a"), node("github", "b")
        graph = Graph().add_node(a).add_node(b).add_edge(node("github", "e"), a, b)

        result = compute_pagerank(graph, unit_evaluator, PagerankOptions(total_score_node_prefix=""))

        assert result[a].score == pytest.approx(500.0)
        assert result[b].score == pytest.approx(500.0)

    def test_score_flows_forward_without_backward_weight(self):
        a, b = node("github", "a"), node("github", "b")
        graph = Graph().add_node(a).add_node(b).add_edge(node("github", "e"), a, b)
        evaluator = weights_to_edge_evaluator({}, default=EdgeWeight(1.0, 0.0))

        result = compute_pagerank(graph, evaluator, PagerankOptions(total_score_node_prefix=""))

        assert result[b].score > result[a].score
        assert result.ranked()[0][0] == "github$example-repo$b"

    def test_prefix_nodes_sum_to_total_score(self):
        graph = build_sample_graph()
        options = PagerankOptions(total_score_node_prefix="github$", total_score=100.0)

        result = compute_pagerank(graph, unit_evaluator, options)

        github_total = sum(
            decomposition.score
            for key, decomposition in result.nodes.items()
            if key.startswith("github$")
        )
        assert github_total == pytest.approx(100.0)
        assert len(result) == 5

    def test_connections_account_for_score(self):
        graph = _connected_graph()
        options = PagerankOptions(total_score_node_prefix="", max_iterations=5000)

        result = compute_pagerank(graph, unit_evaluator, options)

        for _, decomposition in result.ranked():
            total = sum(sc.connection_score for sc in decomposition.scored_connections)
            assert total == pytest.approx(decomposition.score, rel=1e-3)
            scores = [sc.connection_score for sc in decomposition.scored_connections]
            assert scores == sorted(scores, reverse=True)

    def test_connection_kinds(self):
        graph = _connected_graph()
        result = compute_pagerank(graph, unit_evaluator, PagerankOptions(total_score_node_prefix=""))

        kinds = [sc.kind for sc in result[node("github", "d")].scored_connections]
        assert sorted(kind.value for kind in kinds) == ["in_edge", "synthetic_loop"]
        c_kinds = {sc.kind for sc in result[node("github", "c")].scored_connections}
        assert c_kinds == {
            ConnectionKind.IN_EDGE,
            ConnectionKind.OUT_EDGE,
            ConnectionKind.SYNTHETIC_LOOP,
        }

    def test_isolated_nodes_share_score(self):
        graph = Graph().add_node(node("git", "a")).add_node(node("git", "b"))
        result = compute_pagerank(graph, unit_evaluator, PagerankOptions(total_score_node_prefix=""))
        assert result[node("git", "a")].score == pytest.approx(500.0)

    def test_empty_graph_raises(self):
        with pytest.raises(ScoringError, match="empty graph"):
            compute_pagerank(Graph(), unit_evaluator, PagerankOptions(total_score_node_prefix=""))

    def test_unmatched_prefix_raises(self):
        with pytest.raises(ScoringError, match="normalize"):
            compute_pagerank(
                build_sample_graph(),
                unit_evaluator,
                PagerankOptions(total_score_node_prefix="discourse$"),
            )

    def test_negative_weight_raises(self):
        evaluator = weights_to_edge_evaluator({}, default=EdgeWeight(-1.0, 1.0))
        with pytest.raises(ScoringError, match="negative"):
            compute_pagerank(
                build_sample_graph(), evaluator, PagerankOptions(total_score_node_prefix="")
            )

    @pytest.mark.parametrize(
        "weight", [EdgeWeight(float("nan"), 1.0), EdgeWeight(1.0, float("inf"))]
    )
    def test_non_finite_weight_raises(self, weight):
        evaluator = weights_to_edge_evaluator({}, default=weight)
        with pytest.raises(ScoringError, match="non-finite"):
            compute_pagerank(
                build_sample_graph(), evaluator, PagerankOptions(total_score_node_prefix="")
            )

    def test_verbose_logs_summary(self, caplog):
        with caplog.at_level(logging.INFO, logger="cred_explorer.pagerank"):
            compute_pagerank(
                build_sample_graph(),
                unit_evaluator,
                PagerankOptions(total_score_node_prefix="", verbose=True),
            )
        assert "Pagerank finished" in caplog.text


class TestAsyncPagerank:
    """Tests for the awaitable scorer."""

    @pytest.mark.asyncio
    async def test_matches_synchronous_result(self):
        graph = build_sample_graph()
        options = PagerankOptions(total_score_node_prefix="github$")

        result = await pagerank(graph, unit_evaluator, options)

        assert result == compute_pagerank(graph, unit_evaluator, options)
