"""Init command for creating a starter project configuration."""

from __future__ import annotations

from pathlib import Path

import structlog
import typer
from rich.panel import Panel

from fargate_stack.cli.commands.base import console
from fargate_stack.core.config.models import CONFIG_FILE, ProjectConfig

logger = structlog.get_logger()


def init(
    path: Path = typer.Option(
        CONFIG_FILE,
        "--config",
        "-c",
        help="Where to write the configuration file.",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite an existing configuration.",
    ),
) -> None:
    """Write a starter stack.yaml with a dev environment."""
    logger.info("Initializing config", path=str(path))

    if path.exists() and not force:
        console.print(f"[yellow]Configuration already exists at {path}[/yellow]")
        console.print("Use --force to overwrite.")
        raise typer.Exit(code=1)

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(ProjectConfig.sample().to_yaml())

    console.print(
        Panel(
            f"[green]Configuration initialized successfully![/green]\n\n"
            f"Configuration created at: {path}\n\n"
            f"Next steps:\n"
            f"  1. Set account, domain and certificate in {path}\n"
            f"  2. Run [bold]fstack plan -e dev[/bold] to review the routing plan\n"
            f"  3. Run [bold]fstack deploy -e dev[/bold] to create the stack",
            title="fstack init",
            border_style="green",
        )
    )

    logger.info("Configuration initialized", config_file=str(path))
