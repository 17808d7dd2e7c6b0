"""Console surface: argparse command router and output renderer."""

from arena_orchestrator.ui.cli import CLIError, build_parser, run_cli
from arena_orchestrator.ui.render import CLIRenderer, create_renderer

__all__ = ["CLIError", "CLIRenderer", "build_parser", "create_renderer", "run_cli"]
