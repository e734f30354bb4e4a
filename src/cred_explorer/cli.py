"""CLI entry point for cred-explorer.

This module handles command-line argument parsing, logging setup, and the
`pagerank` command, which drives the state machine through a full
load-then-score cycle and saves the resulting scores.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import logging.handlers
import sys
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import assert_never

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .address import address_to_string, string_to_address
from .assets import Assets
from .config import Config, load_config
from .exceptions import CredExplorerError
from .loader import graph_path
from .machine import (
    GetState,
    SetState,
    StateTransitionMachine,
    create_state_transition_machine,
    initial_state,
)
from .models import (
    AppState,
    Initialized,
    PagerankEvaluated,
    ReadyToLoadGraph,
    ReadyToRunPagerank,
    Uninitialized,
)
from .pagerank import PagerankNodeDecomposition
from .repo import Repo, repo_id_to_string, string_to_repo_id
from .store import StateStore

logger = logging.getLogger(__name__)

SCORES_FILENAME = "pagerankScores.json"


class JSONFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "event": record.getMessage(),
            "context": {
                "module": record.module,
                "function": record.funcName,
                "line": record.lineno,
            },
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_context"):
            log_data["context"].update(record.extra_context)

        return json.dumps(log_data, default=str)


def _setup_logging(log_file: Path, debug: bool) -> None:
    """Setup structured JSON logging to a rotating file.

    Args:
        log_file: Path to log file
        debug: Enable debug level logging
    """
    log_file.parent.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if debug else logging.INFO)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # 10MB max, 3 backups
    file_handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    file_handler.setFormatter(JSONFormatter())
    file_handler.setLevel(logging.DEBUG if debug else logging.INFO)
    root_logger.addHandler(file_handler)

    logger.info(
        "Logging initialized",
        extra={"extra_context": {"log_file": str(log_file), "debug": debug}},
    )


def _positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return number


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="cred-explorer",
        description="Load a repository graph and rank its nodes with PageRank",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    pagerank_parser = subparsers.add_parser(
        "pagerank",
        help="Run PageRank for an already-loaded repository",
        description=(
            "Runs PageRank for REPO_ID and saves the scores under the sourcecred "
            "directory. Graph data must already exist for REPO_ID."
        ),
    )
    pagerank_parser.add_argument("repo_id", metavar="REPO_ID", help="Repository as OWNER/NAME")
    pagerank_parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to config.json (default: built-in defaults)",
    )
    pagerank_parser.add_argument(
        "--assets",
        type=Path,
        default=None,
        help="Root directory of the graph data (default: from config)",
    )
    pagerank_parser.add_argument(
        "--prefix",
        default=None,
        help="Encoded address prefix of the nodes whose scores are normalized",
    )
    pagerank_parser.add_argument(
        "--top",
        type=_positive_int,
        default=None,
        help="Number of top-ranked nodes to display",
    )
    pagerank_parser.add_argument("--log-file", type=Path, default=None, help="Path to log file")
    pagerank_parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    return parser.parse_args(argv)


def describe_state(state: AppState) -> str:
    """Return a short human-readable description of a state."""
    match state:
        case Uninitialized():
            return "uninitialized"
        case Initialized(substate=ReadyToLoadGraph(loading=loading)):
            return f"ready to load graph ({loading.value})"
        case Initialized(substate=ReadyToRunPagerank(loading=loading)):
            return f"ready to run pagerank ({loading.value})"
        case Initialized(substate=PagerankEvaluated(loading=loading)):
            return f"pagerank evaluated ({loading.value})"
        case _:
            assert_never(state)


def _log_transition(old: AppState, new: AppState) -> None:
    logger.debug(
        "State changed",
        extra={"extra_context": {"from": describe_state(old), "to": describe_state(new)}},
    )


def scores_to_json(repo: Repo, prefix: str, decomposition: PagerankNodeDecomposition) -> dict:
    """Export a score decomposition as a JSON-serializable dict."""
    return {
        "repo": repo_id_to_string(repo),
        "total_score_node_prefix": prefix,
        "nodes": [
            {
                "address": key,
                "score": node.score,
                "connections": [
                    {
                        "kind": connection.kind.value,
                        "edge": (
                            address_to_string(connection.edge.address)
                            if connection.edge is not None
                            else None
                        ),
                        "source": address_to_string(connection.source),
                        "score": connection.connection_score,
                    }
                    for connection in node.scored_connections
                ],
            }
            for key, node in decomposition.ranked()
        ],
    }


def save_scores(
    directory: Path, repo: Repo, prefix: str, decomposition: PagerankNodeDecomposition
) -> Path:
    """Write the scores to <directory>/data/<owner>/<name>/pagerankScores.json."""
    scores_dir = directory / "data" / repo.owner / repo.name
    scores_dir.mkdir(parents=True, exist_ok=True)
    scores_file = scores_dir / SCORES_FILENAME
    with scores_file.open("w", encoding="utf-8") as handle:
        json.dump(scores_to_json(repo, prefix, decomposition), handle, sort_keys=True, indent=2)
    return scores_file


def _render_scores(decomposition: PagerankNodeDecomposition, top_n: int, console: Console) -> None:
    table = Table(title=f"Top {top_n} nodes")
    table.add_column("Rank", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Plugin")
    table.add_column("Repository")
    table.add_column("Id")
    for rank, (key, node) in enumerate(decomposition.ranked()[:top_n], start=1):
        address = string_to_address(key)
        table.add_row(
            str(rank),
            f"{node.score:.2f}",
            escape(address.owner_plugin),
            escape(address.owner_repo),
            escape(address.local_id),
        )
    console.print(table)


def _die(console: Console, message: str) -> int:
    console.print(f"[red]fatal: {escape(message)}[/red]")
    console.print("[dim]fatal: run 'cred-explorer pagerank --help' for help[/dim]")
    return 1


async def _drive_machine(
    machine: StateTransitionMachine, config: Config, repo: Repo, assets: Assets, prefix: str
) -> None:
    machine.set_edge_evaluator(config.edge_evaluator())
    machine.set_repo(repo)
    await machine.load_graph_and_run_pagerank(assets, prefix)


def run_pagerank_command(
    args: argparse.Namespace,
    console: Console,
    machine_factory: Callable[[GetState, SetState], StateTransitionMachine] = (
        create_state_transition_machine
    ),
) -> int:
    """Execute the pagerank command.

    Args:
        args: Parsed command line arguments
        console: Rich Console for output
        machine_factory: Builds a machine from (get_state, set_state)

    Returns:
        Exit code (0=success, 1=error)
    """
    try:
        config = load_config(args.config)
        repo = string_to_repo_id(args.repo_id)
    except CredExplorerError as err:
        return _die(console, str(err))

    _setup_logging(args.log_file or config.log_file, args.debug)

    assets = Assets(root=(args.assets or config.assets_root).resolve())
    prefix = args.prefix if args.prefix is not None else config.total_score_node_prefix
    top_n = args.top if args.top is not None else config.top_n

    store = StateStore(initial_state())
    store.subscribe(_log_transition)
    machine = machine_factory(store.get, store.set)

    asyncio.run(_drive_machine(machine, config, repo, assets, prefix))

    state = store.get()
    repo_str = repo_id_to_string(repo)
    match state:
        case Initialized(substate=PagerankEvaluated() as evaluated):
            decomposition = evaluated.pagerank_node_decomposition
            scores_file = save_scores(config.sourcecred_directory, repo, prefix, decomposition)
            _render_scores(decomposition, top_n, console)
            console.print(f"[green]Saved scores to {escape(str(scores_file))}[/green]")
            logger.info(
                "Scores saved",
                extra={"extra_context": {"repo": repo_str, "scores_file": str(scores_file)}},
            )
            return 0
        case Initialized(substate=ReadyToLoadGraph()):
            missing = graph_path(assets, repo)
            if not missing.exists():
                console.print(f"[red]fatal: repository ID {repo_str} not loaded[/red]")
                console.print(f"[dim]No graph found at {escape(str(missing))}[/dim]")
                return 1
            return _die(console, f"failed to load graph for {repo_str}")
        case Initialized(substate=ReadyToRunPagerank()):
            return _die(console, f"pagerank failed for {repo_str}")
        case _:
            return _die(console, f"unexpected state: {describe_state(state)}")


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point for the cred-explorer command."""
    args = _parse_args(argv)
    console = Console()
    if args.command == "pagerank":
        return run_pagerank_command(args, console)
    return _die(console, f"unknown command {args.command!r}")


if __name__ == "__main__":
    sys.exit(main())
