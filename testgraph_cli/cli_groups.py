"""Command hierarchy groups for organized CLI experience.

Provides logical grouping of commands under:
  tg graph  : Reverse call graph diagnostics
  tg config : Selection and analysis settings
"""

from __future__ import annotations

import typer

# ── Graph diagnostics group ──────────────────────────────────
graph_grp = typer.Typer(
    help="🔗 Graph — inspect and export the reverse call graph.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# ── Configuration group ──────────────────────────────────────
config_grp = typer.Typer(
    help="⚙️  Configuration — test naming, extensions, and analysis backend.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
