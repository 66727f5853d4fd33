"""Deploy, destroy and status commands: operations against CloudFormation."""

from __future__ import annotations

from typing import Annotated

import structlog
import typer

from fargate_stack.cli.commands.base import (
    CertificateOption,
    ConfigOption,
    DomainNameOption,
    EnvironmentOption,
    OutputOption,
    SubdomainNameOption,
    YesOption,
    console,
    handle_error,
    parse_image_uris,
    resolve_deployment,
)
from fargate_stack.cli.output import OutputFormat, get_formatter
from fargate_stack.core.config.models import CONFIG_FILE
from fargate_stack.integrations.aws.client import CloudFormationClient
from fargate_stack.integrations.aws.exceptions import FargateStackError
from fargate_stack.services.stack.deployer import StackDeployer

logger = structlog.get_logger()

ImageUriOption = Annotated[
    list[str] | None,
    typer.Option(
        "--image-uri",
        "-i",
        help="Pushed image for an asset-image service, as SERVICE_ID=URI (repeatable)",
    ),
]

NoWaitOption = Annotated[
    bool,
    typer.Option("--no-wait", help="Return once the engine accepted the request"),
]


def deploy(
    environment: EnvironmentOption = None,
    config: ConfigOption = CONFIG_FILE,
    image_uri: ImageUriOption = None,
    no_wait: NoWaitOption = False,
    domain_name: DomainNameOption = None,
    subdomain_name: SubdomainNameOption = None,
    certificate_id: CertificateOption = None,
) -> None:
    """Create or update the stack for an environment."""
    image_uris = parse_image_uris(image_uri)
    try:
        deployment = resolve_deployment(
            config,
            environment,
            domain_name=domain_name,
            subdomain_name=subdomain_name,
            certificate_id=certificate_id,
        )
        client = CloudFormationClient(region=deployment.environment.region)
        result = StackDeployer(client).deploy(deployment, image_uris=image_uris, wait=not no_wait)
    except FargateStackError as e:
        handle_error(e)
        return

    logger.info("Deploy finished", stack=result.stack_name, status=result.status)
    console.print(f"[green]Stack {result.stack_name} {result.status}[/green]")
    for key, value in result.outputs.items():
        console.print(f"  {key}: {value}", highlight=False)


def destroy(
    environment: EnvironmentOption = None,
    config: ConfigOption = CONFIG_FILE,
    yes: YesOption = False,
    no_wait: NoWaitOption = False,
) -> None:
    """Delete the stack for an environment."""
    try:
        deployment = resolve_deployment(config, environment)
    except FargateStackError as e:
        handle_error(e)
        return

    stack_name = deployment.stack_name
    if not yes and not typer.confirm(f"Delete stack '{stack_name}'?", default=False):
        console.print("Aborted.")
        raise typer.Exit(1)

    try:
        client = CloudFormationClient(region=deployment.environment.region)
        StackDeployer(client).destroy(stack_name, wait=not no_wait)
    except FargateStackError as e:
        handle_error(e)
        return

    console.print(f"[green]Stack {stack_name} deleted[/green]")


def status(
    environment: EnvironmentOption = None,
    config: ConfigOption = CONFIG_FILE,
    output: OutputOption = OutputFormat.TABLE,
) -> None:
    """Show the deployed stack's status and outputs."""
    try:
        deployment = resolve_deployment(config, environment)
        client = CloudFormationClient(region=deployment.environment.region)
        info = StackDeployer(client).status(deployment.stack_name)
    except FargateStackError as e:
        handle_error(e)
        return

    get_formatter(output, console).format_dict(info, title=f"{deployment.stack_name} status")
