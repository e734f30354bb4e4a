"""State models for the explorer application.

The application state is a closed union of two variants. Once initialized, the
progress of the load-then-score workflow is tracked by a substate, itself a
closed union of three variants. All variants are immutable and compared
structurally; a new value replaces the old one on every transition.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from .loader import GraphWithAdapters
from .pagerank import EdgeEvaluator, PagerankNodeDecomposition
from .repo import Repo


class LoadingStatus(Enum):
    """Progress of the asynchronous operation attached to a substate."""

    NOT_LOADING = "not_loading"
    LOADING = "loading"
    FAILED = "failed"


@dataclass(frozen=True)
class ReadyToLoadGraph:
    """No graph has been loaded for the current repository."""

    loading: LoadingStatus = LoadingStatus.NOT_LOADING


@dataclass(frozen=True)
class ReadyToRunPagerank:
    """A graph is loaded but has not been scored."""

    graph_with_adapters: GraphWithAdapters
    loading: LoadingStatus = LoadingStatus.NOT_LOADING


@dataclass(frozen=True)
class PagerankEvaluated:
    """The loaded graph has been scored at least once."""

    graph_with_adapters: GraphWithAdapters
    pagerank_node_decomposition: PagerankNodeDecomposition
    loading: LoadingStatus = LoadingStatus.NOT_LOADING


AppSubstate = Union[ReadyToLoadGraph, ReadyToRunPagerank, PagerankEvaluated]


@dataclass(frozen=True)
class Uninitialized:
    """Waiting for both a repository and an edge evaluator."""

    repo: Repo | None = None
    edge_evaluator: EdgeEvaluator | None = None


@dataclass(frozen=True)
class Initialized:
    """Repository and edge evaluator are known; the workflow may run."""

    repo: Repo
    edge_evaluator: EdgeEvaluator
    substate: AppSubstate


AppState = Union[Uninitialized, Initialized]
