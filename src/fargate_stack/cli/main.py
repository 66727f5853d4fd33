"""Main CLI entry point using Typer."""

from __future__ import annotations

import typer
from rich.console import Console

from fargate_stack import __version__
from fargate_stack.cli.commands import deploy, init, plan
from fargate_stack.logging.config import configure_logging

app = typer.Typer(
    name="fstack",
    help="Plan, synthesize and deploy Fargate services behind a load balancer.",
    add_completion=True,
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"fstack version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output.",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug mode.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Write console logs as JSON lines.",
    ),
) -> None:
    """fstack - Fargate stacks with path and host routing."""
    configure_logging(verbose=verbose, debug=debug, json_output=json_logs)


app.command()(init.init)
app.command()(plan.plan)
app.command()(plan.synth)
app.command()(deploy.deploy)
app.command()(deploy.destroy)
app.command()(deploy.status)


if __name__ == "__main__":
    app()
