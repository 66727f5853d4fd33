"""Shared options, error handling and configuration loading for commands."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from fargate_stack.cli.output import OutputFormat
from fargate_stack.core.config.models import DeploymentConfig, load_config
from fargate_stack.integrations.aws.exceptions import (
    ConfigurationError,
    FargateStackError,
    ProvisioningConnectionError,
    ProvisioningError,
    StackNotFoundError,
)

console = Console()
err_console = Console(stderr=True)


# =============================================================================
# Common Typer Option Annotations
# =============================================================================

ConfigOption = Annotated[
    Path,
    typer.Option(
        "--config",
        "-c",
        help="Project configuration file",
        envvar="FSTACK_CONFIG",
    ),
]

EnvironmentOption = Annotated[
    str | None,
    typer.Option(
        "--environment",
        "-e",
        help="Environment to use (e.g. dev, prod)",
        envvar="FSTACK_ENVIRONMENT",
    ),
]

DomainNameOption = Annotated[
    str | None,
    typer.Option("--domain-name", help="Override the hosted zone domain"),
]

SubdomainNameOption = Annotated[
    str | None,
    typer.Option("--subdomain-name", help="Override the record name"),
]

CertificateOption = Annotated[
    str | None,
    typer.Option("--certificate-id", help="Override the certificate identifier"),
]

OutputOption = Annotated[
    OutputFormat,
    typer.Option(
        "--output",
        "-o",
        help="Output format: table, json, or yaml",
        case_sensitive=False,
    ),
]

YesOption = Annotated[
    bool,
    typer.Option("--yes", "-y", help="Skip confirmation prompts"),
]


# =============================================================================
# Error Handling
# =============================================================================


def handle_error(error: FargateStackError) -> None:
    """Print a user-facing error and exit with status 1.

    Raises:
        typer.Exit: Always exits with code 1.
    """
    if isinstance(error, ConfigurationError):
        err_console.print("[red]Error:[/red] Invalid configuration", highlight=False)
        err_console.print(f"  {error}", markup=False, highlight=False)

    elif isinstance(error, StackNotFoundError):
        err_console.print(f"[red]Error:[/red] {error.message}", highlight=False)
        err_console.print("\n[dim]Hint: Run fstack deploy to create it.[/dim]")

    elif isinstance(error, ProvisioningConnectionError):
        err_console.print("[red]Error:[/red] Cannot reach CloudFormation")
        err_console.print(f"  {error.message}", markup=False, highlight=False)
        err_console.print("\n[dim]Hint: Check your network and AWS credentials.[/dim]")

    elif isinstance(error, ProvisioningError):
        err_console.print("[red]Error:[/red] Provisioning failed")
        err_console.print(f"  {error}", markup=False, highlight=False)

    else:
        err_console.print(f"[red]Error:[/red] {error.message}", highlight=False)

    raise typer.Exit(1)


# =============================================================================
# Configuration
# =============================================================================


def resolve_deployment(
    config_path: Path,
    environment: str | None,
    *,
    domain_name: str | None = None,
    subdomain_name: str | None = None,
    certificate_id: str | None = None,
) -> DeploymentConfig:
    """Load the project file and resolve one environment.

    Raises:
        ConfigurationError: If the file is missing or invalid, or the
            environment cannot be resolved.
    """
    config = load_config(config_path)
    if config is None:
        raise ConfigurationError(
            f"No configuration found at {config_path}. Run fstack init to create one."
        )
    return config.deployment(
        environment,
        domain_name=domain_name,
        subdomain_name=subdomain_name,
        certificate_identifier=certificate_id,
    )


def parse_image_uris(items: list[str] | None) -> dict[str, str]:
    """Parse repeated ``SERVICE_ID=IMAGE_URI`` options.

    Raises:
        typer.BadParameter: If an item is malformed or repeats a service.
    """
    result: dict[str, str] = {}
    for item in items or []:
        service_id, sep, uri = item.partition("=")
        service_id, uri = service_id.strip(), uri.strip()
        if not sep or not service_id or not uri:
            raise typer.BadParameter(f"Invalid image URI '{item}'. Expected 'SERVICE_ID=URI'.")
        if service_id in result:
            raise typer.BadParameter(f"Image URI for '{service_id}' given more than once")
        result[service_id] = uri
    return result
