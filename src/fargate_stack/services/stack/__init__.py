"""Template synthesis and stack deployment."""

from fargate_stack.services.stack.deployer import (
    DeployResult,
    StackDeployer,
    SynthesizedStack,
    synthesize,
)
from fargate_stack.services.stack.template import StackTemplateBuilder

__all__ = [
    "DeployResult",
    "StackDeployer",
    "StackTemplateBuilder",
    "SynthesizedStack",
    "synthesize",
]
