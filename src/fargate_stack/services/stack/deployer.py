"""Stack deployment: plan, synthesize and submit to CloudFormation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog

from fargate_stack.integrations.aws.exceptions import ConfigurationError
from fargate_stack.services.routing.plan_builder import build_plan
from fargate_stack.services.stack.template import StackTemplateBuilder

if TYPE_CHECKING:
    from fargate_stack.core.config.models import DeploymentConfig
    from fargate_stack.integrations.aws.client import CloudFormationClient
    from fargate_stack.integrations.aws.models.routing import RoutingPlan

logger = structlog.get_logger()


@dataclass(frozen=True)
class SynthesizedStack:
    """A routing plan together with the template synthesized from it."""

    stack_name: str
    plan: RoutingPlan
    template: dict[str, Any]
    image_parameters: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class DeployResult:
    """Outcome of a deploy: ``created``, ``updated`` or ``unchanged``."""

    stack_name: str
    status: str
    outputs: dict[str, str] = field(default_factory=dict)


def synthesize(deployment: DeploymentConfig) -> SynthesizedStack:
    """Build the routing plan and template for a deployment.

    Raises:
        ConfigurationError: If the declarations are invalid.
    """
    plan = build_plan(deployment.services)
    builder = StackTemplateBuilder(
        deployment.stack_name,
        deployment.services,
        plan,
        deployment.domain,
        tags=deployment.tags,
        network=deployment.network,
    )
    return SynthesizedStack(
        stack_name=deployment.stack_name,
        plan=plan,
        template=builder.build(),
        image_parameters=builder.image_parameters,
    )


class StackDeployer:
    """Submits synthesized stacks through a CloudFormationClient.

    Planning and synthesis happen locally and completely before anything
    is submitted; a configuration error never reaches the engine.
    """

    def __init__(self, client: CloudFormationClient) -> None:
        """Initialize the deployer.

        Args:
            client: CloudFormation client for the deployment's region.
        """
        self._client = client
        self._log = logger.bind(service="stack_deployer")

    def deploy(
        self,
        deployment: DeploymentConfig,
        image_uris: dict[str, str] | None = None,
        wait: bool = True,
    ) -> DeployResult:
        """Create or update the stack for a deployment.

        Args:
            deployment: Resolved deployment configuration.
            image_uris: Pushed image URI per asset-image service id.
            wait: Block until the engine finishes.

        Raises:
            ConfigurationError: If the declarations are invalid, an asset image
                has no URI, or a URI names an unknown or non-asset service.
            ProvisioningError: If the engine rejects the stack.
        """
        image_uris = image_uris or {}
        stack = synthesize(deployment)

        unknown = sorted(set(image_uris) - set(stack.image_parameters))
        if unknown:
            raise ConfigurationError(
                f"image URIs given for services without asset images: {', '.join(unknown)}",
                field="image",
            )
        missing = sorted(set(stack.image_parameters) - set(image_uris))
        if missing:
            raise ConfigurationError(
                f"asset images need a pushed image URI: {', '.join(missing)}",
                service_id=missing[0],
                field="image",
            )

        parameters = {
            stack.image_parameters[service_id]: uri for service_id, uri in image_uris.items()
        }
        self._log.info(
            "deploying_stack",
            stack=stack.stack_name,
            rules=len(stack.plan.rules),
            default_target=stack.plan.default_target,
        )
        status = self._client.deploy_stack(
            stack.stack_name,
            stack.template,
            parameters=parameters,
            tags=list(deployment.tags),
            wait=wait,
        )
        outputs = self._client.get_outputs(stack.stack_name) if wait else {}
        return DeployResult(stack_name=stack.stack_name, status=status, outputs=outputs)

    def destroy(self, stack_name: str, wait: bool = True) -> None:
        """Delete a stack."""
        self._log.info("destroying_stack", stack=stack_name)
        self._client.delete_stack(stack_name, wait=wait)

    def status(self, stack_name: str) -> dict[str, Any]:
        """Return status, reason and outputs of a stack."""
        stack = self._client.describe_stack(stack_name)
        return {
            "stack_name": stack_name,
            "status": stack.get("StackStatus", "UNKNOWN"),
            "reason": stack.get("StackStatusReason", ""),
            "outputs": {
                output["OutputKey"]: output["OutputValue"] for output in stack.get("Outputs", [])
            },
        }
