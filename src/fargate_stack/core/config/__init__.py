"""Project configuration with Pydantic validation."""

from fargate_stack.core.config.models import (
    DeploymentConfig,
    DomainConfig,
    EnvironmentConfig,
    ProjectConfig,
    load_config,
    load_raw_config,
)

__all__ = [
    "DeploymentConfig",
    "DomainConfig",
    "EnvironmentConfig",
    "ProjectConfig",
    "load_config",
    "load_raw_config",
]
