# Copyright (c) Syntropy Systems
"""Main CLI entry point for watchbench."""

import typer

from watchbench.cli.doctor import doctor
from watchbench.cli.init_cmd import init
from watchbench.cli.projects import projects
from watchbench.cli.run_cmd import run

app = typer.Typer(
    name="watchbench",
    help=(
        "Watch-mode latency benchmarks for build tools. Change a source, "
        "time the rebuild."
    ),
    no_args_is_help=True,
    add_completion=False,
)

# Register commands
_ = app.command()(init)
_ = app.command()(run)
_ = app.command()(projects)
_ = app.command()(doctor)


if __name__ == "__main__":
    app()
