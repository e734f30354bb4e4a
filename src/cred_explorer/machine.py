"""State transition machine for the explorer application.

The machine owns a single state cell, reached through injected get/set
accessors, and drives the two asynchronous phases of the workflow: loading a
graph and scoring it.

Asynchronous transitions are guarded optimistically. Before suspending, an
operation commits a LOADING marker and remembers the resulting state. When it
resumes, it commits its outcome only if the live state still equals what it
remembered; otherwise some other operation has changed the state in the
meantime and the outcome is discarded.

In production, build the machine with create_state_transition_machine. The
constructor accepts the loader and scorer directly so tests can substitute them.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Awaitable, Callable
from typing import assert_never

from .assets import Assets
from .exceptions import InvalidStateTransition
from .graph import Graph
from .loader import GraphWithAdapters, load_graph_with_adapters
from .models import (
    AppState,
    Initialized,
    LoadingStatus,
    PagerankEvaluated,
    ReadyToLoadGraph,
    ReadyToRunPagerank,
    Uninitialized,
)
from .pagerank import EdgeEvaluator, PagerankNodeDecomposition, PagerankOptions, pagerank
from .repo import Repo, repo_id_to_string

logger = logging.getLogger(__name__)

GetState = Callable[[], AppState]
SetState = Callable[[AppState], None]
GraphLoader = Callable[[Assets, Repo], Awaitable[GraphWithAdapters]]
Scorer = Callable[[Graph, EdgeEvaluator, PagerankOptions], Awaitable[PagerankNodeDecomposition]]


def initial_state() -> AppState:
    return Uninitialized(repo=None, edge_evaluator=None)


def create_state_transition_machine(
    get_state: GetState, set_state: SetState
) -> StateTransitionMachine:
    """Wire a machine to the default graph loader and scorer."""
    return StateTransitionMachine(get_state, set_state, load_graph_with_adapters, pagerank)


class StateTransitionMachine:
    """Sequences and guards every transition of the application state."""

    def __init__(
        self,
        get_state: GetState,
        set_state: SetState,
        load_graph_with_adapters: GraphLoader,
        pagerank: Scorer,
    ):
        """Initialize the machine.

        Args:
            get_state: Returns the live application state
            set_state: Replaces the application state
            load_graph_with_adapters: Loads the graph for a repository
            pagerank: Scores a graph
        """
        self.get_state = get_state
        self.set_state = set_state
        self.load_graph_with_adapters = load_graph_with_adapters
        self.pagerank = pagerank

    def _maybe_initialize(self, state: Uninitialized) -> AppState:
        if state.repo is not None and state.edge_evaluator is not None:
            logger.debug(
                "Application initialized",
                extra={"extra_context": {"repo": repo_id_to_string(state.repo)}},
            )
            return Initialized(
                repo=state.repo,
                edge_evaluator=state.edge_evaluator,
                substate=ReadyToLoadGraph(loading=LoadingStatus.NOT_LOADING),
            )
        return state

    def set_repo(self, repo: Repo) -> None:
        """Select a repository, discarding any graph or scores of the previous one."""
        state = self.get_state()
        match state:
            case Uninitialized():
                self.set_state(self._maybe_initialize(dataclasses.replace(state, repo=repo)))
            case Initialized():
                substate = ReadyToLoadGraph(loading=LoadingStatus.NOT_LOADING)
                self.set_state(dataclasses.replace(state, repo=repo, substate=substate))
            case _:
                assert_never(state)

    def set_edge_evaluator(self, edge_evaluator: EdgeEvaluator) -> None:
        """Replace the edge evaluator; a loaded graph stays valid."""
        state = self.get_state()
        match state:
            case Uninitialized():
                self.set_state(
                    self._maybe_initialize(dataclasses.replace(state, edge_evaluator=edge_evaluator))
                )
            case Initialized():
                self.set_state(dataclasses.replace(state, edge_evaluator=edge_evaluator))
            case _:
                assert_never(state)

    def _commit_if_fresh(self, expected: AppState, new_state: AppState, operation: str) -> bool:
        """Commit new_state only if nobody changed the state since expected was set."""
        if self.get_state() == expected:
            self.set_state(new_state)
            return True
        logger.debug(
            "Discarding stale result",
            extra={"extra_context": {"operation": operation}},
        )
        return False

    async def load_graph(self, assets: Assets) -> bool:
        """Load the graph for the current repository.

        Returns:
            True if the graph loaded and the result was committed

        Raises:
            InvalidStateTransition: Unless initialized and ready to load a graph
        """
        state = self.get_state()
        if not isinstance(state, Initialized) or not isinstance(state.substate, ReadyToLoadGraph):
            raise InvalidStateTransition("Tried to load graph in incorrect state")

        repo, substate = state.repo, state.substate
        loading_state = dataclasses.replace(
            state, substate=dataclasses.replace(substate, loading=LoadingStatus.LOADING)
        )
        self.set_state(loading_state)

        success = True
        try:
            graph_with_adapters = await self.load_graph_with_adapters(assets, repo)
            new_state = dataclasses.replace(
                state,
                substate=ReadyToRunPagerank(
                    graph_with_adapters=graph_with_adapters, loading=LoadingStatus.NOT_LOADING
                ),
            )
        except Exception as err:
            logger.error(
                f"Failed to load graph: {err}",
                extra={"extra_context": {"repo": repo_id_to_string(repo)}},
                exc_info=True,
            )
            new_state = dataclasses.replace(
                state, substate=dataclasses.replace(substate, loading=LoadingStatus.FAILED)
            )
            success = False

        committed = self._commit_if_fresh(loading_state, new_state, "load_graph")
        return committed and success

    async def run_pagerank(self, total_score_node_prefix: str) -> bool:
        """Score the loaded graph, replacing any previous scores.

        Returns:
            True if scoring succeeded and the result was committed

        Raises:
            InvalidStateTransition: Unless initialized with a loaded graph
        """
        state = self.get_state()
        if not isinstance(state, Initialized) or isinstance(state.substate, ReadyToLoadGraph):
            raise InvalidStateTransition("Tried to run pagerank in incorrect state")

        edge_evaluator, substate = state.edge_evaluator, state.substate
        loading_state = dataclasses.replace(
            state, substate=dataclasses.replace(substate, loading=LoadingStatus.LOADING)
        )
        self.set_state(loading_state)

        graph_with_adapters = substate.graph_with_adapters
        success = True
        try:
            decomposition = await self.pagerank(
                graph_with_adapters.graph,
                edge_evaluator,
                PagerankOptions(total_score_node_prefix=total_score_node_prefix, verbose=True),
            )
            new_state = dataclasses.replace(
                state,
                substate=PagerankEvaluated(
                    graph_with_adapters=graph_with_adapters,
                    pagerank_node_decomposition=decomposition,
                    loading=LoadingStatus.NOT_LOADING,
                ),
            )
        except Exception as err:
            logger.error(
                f"Failed to run pagerank: {err}",
                extra={"extra_context": {"repo": repo_id_to_string(state.repo)}},
                exc_info=True,
            )
            new_state = dataclasses.replace(
                state, substate=dataclasses.replace(substate, loading=LoadingStatus.FAILED)
            )
            success = False

        committed = self._commit_if_fresh(loading_state, new_state, "run_pagerank")
        return committed and success

    async def load_graph_and_run_pagerank(
        self, assets: Assets, total_score_node_prefix: str
    ) -> bool:
        """Load the graph if needed, then score it.

        Returns:
            True if the final step succeeded and was committed

        Raises:
            InvalidStateTransition: If the application is not initialized
        """
        state = self.get_state()
        if not isinstance(state, Initialized):
            raise InvalidStateTransition("Tried to load and run from incorrect state")

        substate = state.substate
        match substate:
            case ReadyToLoadGraph():
                if await self.load_graph(assets):
                    return await self.run_pagerank(total_score_node_prefix)
                return False
            case ReadyToRunPagerank() | PagerankEvaluated():
                return await self.run_pagerank(total_score_node_prefix)
            case _:
                assert_never(substate)
