"""Command-line interface router for arena-orchestrator."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from dataclasses import dataclass

from arena_orchestrator.config import (
    ArenaConfig,
    dump_effective_config,
    load_config,
    resolve_config_path,
)
from arena_orchestrator.match import MatchOrchestrator, MatchResult, RoundOutcome
from arena_orchestrator.observability import StructuredLoggingHandle, setup_logging
from arena_orchestrator.ui.render import CLIRenderer, create_renderer

# Matches ExitCode.CONFIG_ERROR in arena_orchestrator.main.
_CONFIG_ERROR_EXIT = 2


@dataclass(frozen=True, slots=True)
class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    message: str
    exit_code: int = 1

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse command router for all supported CLI workflows."""

    parser = argparse.ArgumentParser(
        prog="arena",
        description=(
            "arena-orchestrator: lowest-unique-integer bot matches.\n\n"
            "Common workflows:\n"
            "  arena run arena.yaml             Run a match and print the scores\n"
            "  arena config arena.yaml          Show the effective config\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "config_path",
        nargs="?",
        default=None,
        help="Path to the match config (.yaml, .yml or .toml; default: ./arena.yaml).",
    )
    common.add_argument("--rounds", type=int, default=None, help="Override the round count.")
    common.add_argument(
        "--image",
        default=None,
        help="Run every competitor inside this container image.",
    )
    common.add_argument(
        "--container-runtime",
        default=None,
        help="Container runtime binary (default: docker).",
    )
    common.add_argument(
        "--log-level",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        type=str.upper,
        default=None,
        help="Log level for the console and file sinks.",
    )
    common.add_argument("--log-file", default=None, help="Write JSON-lines logs to this path.")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # run -----------------------------------------------------------------
    run_parser = subparsers.add_parser(
        "run",
        parents=[common],
        help="Run a match",
        description=(
            "Launch every configured competitor, play the configured rounds and\n"
            "print the final score table.\n\n"
            "Examples:\n"
            "  arena run arena.yaml\n"
            "  arena run arena.yaml --rounds 100\n"
            "  arena run arena.yaml --image arena-python:latest\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    run_parser.add_argument(
        "--no-color",
        action="store_true",
        default=False,
        help="Disable colored output (also respects NO_COLOR env var).",
    )
    run_parser.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        default=False,
        help="Only print the final score table.",
    )
    run_parser.set_defaults(handler=_cmd_run)

    # config --------------------------------------------------------------
    config_parser = subparsers.add_parser(
        "config",
        parents=[common],
        help="Print the validated effective config as JSON",
    )
    config_parser.set_defaults(handler=_cmd_config)

    return parser


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return 2

    try:
        result = handler(namespace)
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code
    return int(result)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_run(args: argparse.Namespace) -> int:
    config = _load_effective_config(args)
    renderer = create_renderer(no_color=args.no_color, verbose=not args.quiet)
    handle = _start_logging(config)
    try:
        base_dir = resolve_config_path(args.config_path).parent
        with MatchOrchestrator.from_config(config, base_dir=base_dir) as match:
            if renderer.verbose:
                renderer.heading(
                    f"Match {match.match_id}: {len(match.clients)} competitors, "
                    f"{match.rounds} rounds"
                )
            result = match.run(
                on_ready=lambda pending: _render_pending(renderer, match, pending),
                on_round=lambda index, outcome: _render_round(renderer, match, index, outcome),
            )
        _render_scores(renderer, result)
    finally:
        handle.shutdown()
    return 0


def _cmd_config(args: argparse.Namespace) -> int:
    config = _load_effective_config(args)
    print(dump_effective_config(config))
    return 0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_effective_config(args: argparse.Namespace) -> ArenaConfig:
    return load_config(
        args.config_path,
        cli_overrides={
            "rounds": args.rounds,
            "image": args.image,
            "container_runtime": args.container_runtime,
            "logging.level": args.log_level,
            "logging.file": args.log_file,
        },
    )


def _start_logging(config: ArenaConfig) -> StructuredLoggingHandle:
    try:
        return setup_logging(config["logging"])
    except OSError as exc:
        raise CLIError(
            f"unable to open log file {config['logging']['file']}: {exc}",
            exit_code=_CONFIG_ERROR_EXIT,
        ) from exc


def _render_pending(
    renderer: CLIRenderer, match: MatchOrchestrator, pending: tuple[int, ...]
) -> None:
    for index in pending:
        renderer.warning(f"client #{index} ({match.clients[index].name}) is still initializing")


def _render_round(
    renderer: CLIRenderer,
    match: MatchOrchestrator,
    index: int,
    outcome: RoundOutcome,
) -> None:
    if not renderer.verbose:
        return
    winner = outcome.winner
    if winner is None:
        if outcome.survivors:
            renderer.text(f"Round #{index}: no winner, only an errored competitor survived")
        else:
            renderer.text(f"Round #{index}: no winner, every value was eliminated")
        return
    renderer.text(
        f"Round #{index}: winner is client #{winner} ({match.clients[winner].name}) "
        f"with {outcome.values[winner]}"
    )


def _render_scores(renderer: CLIRenderer, result: MatchResult) -> None:
    rows = [
        (index, name, points, state.value)
        for (index, name, points), state in zip(
            result.standings(), result.final_states, strict=True
        )
    ]
    renderer.table(("#", "Competitor", "Points", "State"), rows, title="Scores")
    if renderer.verbose:
        renderer.blank()
        renderer.kv("Rounds played", result.rounds_played)


__all__ = ["CLIError", "build_parser", "run_cli"]
