"""Plan and synth commands: local, side-effect free views of a stack."""

from __future__ import annotations

from pathlib import Path
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
    console,
    handle_error,
    resolve_deployment,
)
from fargate_stack.cli.output import OutputFormat, TemplateFormat, get_formatter, render_template
from fargate_stack.core.config.models import CONFIG_FILE
from fargate_stack.integrations.aws.exceptions import FargateStackError
from fargate_stack.services.stack.deployer import synthesize

logger = structlog.get_logger()


def plan(
    environment: EnvironmentOption = None,
    config: ConfigOption = CONFIG_FILE,
    output: OutputOption = OutputFormat.TABLE,
    domain_name: DomainNameOption = None,
    subdomain_name: SubdomainNameOption = None,
    certificate_id: CertificateOption = None,
) -> None:
    """Show the load balancer routing plan for an environment."""
    try:
        deployment = resolve_deployment(
            config,
            environment,
            domain_name=domain_name,
            subdomain_name=subdomain_name,
            certificate_id=certificate_id,
        )
        stack = synthesize(deployment)
    except FargateStackError as e:
        handle_error(e)
        return

    logger.info("Routing plan built", stack=stack.stack_name, rules=len(stack.plan.rules))
    formatter = get_formatter(output, console)
    formatter.format_plan(stack.plan, title=f"{stack.stack_name} routing plan")
    if output == OutputFormat.TABLE:
        console.print(f"[dim]Endpoint: https://{deployment.domain.fqdn}[/dim]")
        if stack.image_parameters:
            ids = ", ".join(sorted(stack.image_parameters))
            console.print(f"[dim]Asset images needing --image-uri on deploy: {ids}[/dim]")


def synth(
    environment: EnvironmentOption = None,
    config: ConfigOption = CONFIG_FILE,
    template_format: Annotated[
        TemplateFormat,
        typer.Option("--format", "-f", help="Template format: json or yaml", case_sensitive=False),
    ] = TemplateFormat.JSON,
    output_file: Annotated[
        Path | None,
        typer.Option("--output-file", help="Write the template to a file instead of stdout"),
    ] = None,
    domain_name: DomainNameOption = None,
    subdomain_name: SubdomainNameOption = None,
    certificate_id: CertificateOption = None,
) -> None:
    """Synthesize the CloudFormation template for an environment."""
    try:
        deployment = resolve_deployment(
            config,
            environment,
            domain_name=domain_name,
            subdomain_name=subdomain_name,
            certificate_id=certificate_id,
        )
        stack = synthesize(deployment)
    except FargateStackError as e:
        handle_error(e)
        return

    rendered = render_template(stack.template, template_format)
    if output_file is None:
        typer.echo(rendered, nl=False)
        return

    output_file.parent.mkdir(parents=True, exist_ok=True)
    output_file.write_text(rendered)
    logger.info("Template written", stack=stack.stack_name, path=str(output_file))
    console.print(f"[green]Template for {stack.stack_name} written to {output_file}[/green]")
