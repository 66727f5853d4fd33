"""AWS integration - stack models, exceptions and the CloudFormation client."""

from fargate_stack.integrations.aws.client import CloudFormationClient
from fargate_stack.integrations.aws.exceptions import (
    ConfigurationError,
    FargateStackError,
    ProvisioningConnectionError,
    ProvisioningError,
    StackNotFoundError,
)

__all__ = [
    "CloudFormationClient",
    "ConfigurationError",
    "FargateStackError",
    "ProvisioningConnectionError",
    "ProvisioningError",
    "StackNotFoundError",
]
