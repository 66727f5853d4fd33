"""Project configuration for fstack.

A project is described by a YAML file (``stack.yaml`` by default) holding
the application name, the target account and region, the public domain
and, per environment, the services to run and the tags to apply.
Selecting an environment resolves the file into a DeploymentConfig.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    ValidationError,
    field_validator,
    model_validator,
)

from fargate_stack.integrations.aws.exceptions import ConfigurationError
from fargate_stack.integrations.aws.models.base import Tag
from fargate_stack.integrations.aws.models.domain import (
    DomainProperties,
    NetworkConfig,
    StackEnvironment,
)
from fargate_stack.integrations.aws.models.service import (
    ContainerImage,
    RoutingCondition,
    ServiceSpec,
)

CONFIG_FILE = Path("stack.yaml")
ENV_PREFIX = "FSTACK_"

_APP_NAME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9-]*$")

_HEADER = """\
# fstack project configuration
# Stacks are named <app_name>-<environment>; select one with --environment.
# Services without conditions become the load balancer's default target;
# at most one service per environment may omit them.

"""


class DomainConfig(BaseModel):
    """Public domain of the stack.

    Either ``certificate_arn`` or ``certificate_identifier`` must be set;
    an identifier is expanded into an ARN in the stack's account and region.
    """

    model_config = ConfigDict(extra="forbid")

    domain_name: str | None = None
    subdomain_name: str | None = None
    certificate_identifier: str | None = None
    certificate_arn: str | None = None

    @model_validator(mode="after")
    def check_single_certificate_source(self) -> DomainConfig:
        if self.certificate_identifier and self.certificate_arn:
            raise ValueError("set either certificate_identifier or certificate_arn, not both")
        return self


class EnvironmentConfig(BaseModel):
    """Services and tags of one environment (e.g. dev or prod)."""

    model_config = ConfigDict(extra="forbid")

    services: list[ServiceSpec] = Field(default_factory=list)
    tags: list[Tag] = Field(default_factory=list)
    subdomain_name: str | None = None
    network: NetworkConfig | None = None


class DeploymentConfig(BaseModel):
    """Everything needed to plan and synthesize one stack."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    stack_name: str
    environment_name: str
    environment: StackEnvironment
    services: tuple[ServiceSpec, ...]
    domain: DomainProperties
    tags: tuple[Tag, ...] = ()
    network: NetworkConfig = Field(default_factory=NetworkConfig)


class ProjectConfig(BaseModel):
    """Root of the ``stack.yaml`` file."""

    model_config = ConfigDict(extra="forbid")

    version: str = "1.0"
    app_name: str = "AppName"
    region: str | None = None
    account: str | None = None
    domain: DomainConfig = Field(default_factory=DomainConfig)
    network: NetworkConfig = Field(default_factory=NetworkConfig)
    environments: dict[str, EnvironmentConfig] = Field(default_factory=dict)

    # FSTACK_SUBDOMAIN_NAME; outranks per-environment subdomains
    _subdomain_override: str | None = PrivateAttr(default=None)

    @field_validator("app_name")
    @classmethod
    def validate_app_name(cls, v: str) -> str:
        """App names prefix stack names, which allow letters, digits and hyphens."""
        if not _APP_NAME_PATTERN.match(v):
            raise ValueError(
                f"Invalid app_name {v!r}: use letters, digits and hyphens, starting with a letter"
            )
        return v

    @field_validator("account", mode="before")
    @classmethod
    def coerce_account(cls, v: Any) -> Any:
        return None if v is None else str(v)

    @classmethod
    def from_env(cls, base_config: dict[str, Any] | None = None) -> ProjectConfig:
        """Create configuration with environment variable overrides.

        Environment variables take precedence over base_config values.

        Supported environment variables:
            FSTACK_REGION: Target region
            FSTACK_ACCOUNT: Target account id
            FSTACK_DOMAIN_NAME: Hosted zone domain
            FSTACK_SUBDOMAIN_NAME: Record name within the zone, ahead of any
                per-environment subdomain_name
            FSTACK_CERTIFICATE_ID: Certificate identifier (replaces certificate_arn)
        """
        config_dict = dict(base_config) if base_config else {}
        domain = dict(config_dict.get("domain") or {})

        if region := os.environ.get(f"{ENV_PREFIX}REGION"):
            config_dict["region"] = region
        if account := os.environ.get(f"{ENV_PREFIX}ACCOUNT"):
            config_dict["account"] = account
        if domain_name := os.environ.get(f"{ENV_PREFIX}DOMAIN_NAME"):
            domain["domain_name"] = domain_name
        if subdomain_name := os.environ.get(f"{ENV_PREFIX}SUBDOMAIN_NAME"):
            domain["subdomain_name"] = subdomain_name
        if certificate_id := os.environ.get(f"{ENV_PREFIX}CERTIFICATE_ID"):
            domain["certificate_identifier"] = certificate_id
            domain.pop("certificate_arn", None)

        if domain:
            config_dict["domain"] = domain
        config = cls.model_validate(config_dict)
        config._subdomain_override = subdomain_name or None
        return config

    @classmethod
    def sample(cls) -> ProjectConfig:
        """Starter configuration written by ``fstack init``."""
        return cls(
            app_name="AppName",
            region="eu-west-1",
            account="123456789012",
            domain=DomainConfig(
                domain_name="example.com",
                subdomain_name="site",
                certificate_identifier="00000000-0000-0000-0000-000000000000",
            ),
            environments={
                "dev": EnvironmentConfig(
                    subdomain_name="site-dev",
                    services=[
                        ServiceSpec(
                            id="AppName1",
                            image=ContainerImage.from_asset("./app"),
                            container_port=80,
                            environment={"APP_ENVIRONMENT": "env-AppName1-dev"},
                            conditions=(RoutingCondition.path_patterns("/example*"),),
                        ),
                        ServiceSpec(
                            id="EcsSample",
                            image=ContainerImage.from_registry("amazon/amazon-ecs-sample"),
                            container_port=80,
                            environment={"APP_ENVIRONMENT": "env-EcsSample-dev"},
                        ),
                    ],
                    tags=[
                        Tag(name="Application", value="starter-app"),
                        Tag(name="CostCenter", value="10001"),
                    ],
                ),
            },
        )

    def to_yaml(self) -> str:
        """Render the configuration as YAML with an explanatory header."""
        data = self.model_dump(mode="json", exclude_none=True)
        return _HEADER + yaml.safe_dump(data, sort_keys=False, default_flow_style=False)

    def deployment(
        self,
        environment: str | None,
        *,
        domain_name: str | None = None,
        subdomain_name: str | None = None,
        certificate_identifier: str | None = None,
    ) -> DeploymentConfig:
        """Resolve the configuration for one environment.

        Keyword arguments override the file's domain settings, the same way
        the environment variables do.

        Raises:
            ConfigurationError: If the environment is missing or unknown, or
                the account, region or domain are incomplete.
        """
        if not environment:
            raise ConfigurationError("Environment must be given", field="environment")
        env_config = self.environments.get(environment)
        if env_config is None:
            known = ", ".join(sorted(self.environments)) or "none"
            raise ConfigurationError(
                f"unknown environment '{environment}' (configured: {known})",
                field="environment",
            )
        if not self.region or not self.account:
            raise ConfigurationError("region and account must be configured", field="account")

        domain_name = domain_name or self.domain.domain_name
        subdomain_name = (
            subdomain_name
            or self._subdomain_override
            or env_config.subdomain_name
            or self.domain.subdomain_name
        )
        if not domain_name or not subdomain_name:
            raise ConfigurationError(
                "domain_name and subdomain_name must be configured", field="domain"
            )

        try:
            stack_environment = StackEnvironment(region=self.region, account=self.account)
            if certificate_identifier or self.domain.certificate_identifier:
                domain = DomainProperties.from_certificate_identifier(
                    stack_environment,
                    certificate_identifier or self.domain.certificate_identifier or "",
                    domain_name,
                    subdomain_name,
                )
            elif self.domain.certificate_arn:
                domain = DomainProperties(
                    domain_name=domain_name,
                    subdomain_name=subdomain_name,
                    domain_certificate_arn=self.domain.certificate_arn,
                )
            else:
                raise ConfigurationError(
                    "a certificate_identifier or certificate_arn must be configured",
                    field="domain",
                )

            return DeploymentConfig(
                stack_name=f"{self.app_name}-{environment}",
                environment_name=environment,
                environment=stack_environment,
                services=tuple(env_config.services),
                domain=domain,
                tags=tuple(env_config.tags),
                network=env_config.network or self.network,
            )
        except ValidationError as e:
            raise ConfigurationError(_describe_validation_error(e)) from e


def _describe_validation_error(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"]) or "config"
    message = f"{location}: {first['msg']}"
    if error.error_count() > 1:
        message += f" (and {error.error_count() - 1} more)"
    return message


def load_raw_config(path: Path | None = None) -> dict[str, Any]:
    """Load the YAML file without validation.

    Returns an empty dict when the file is absent or not valid YAML.
    """
    config_path = path or CONFIG_FILE
    if not config_path.exists():
        return {}
    try:
        data = yaml.safe_load(config_path.read_text())
    except yaml.YAMLError:
        return {}
    return data if isinstance(data, dict) else {}


def load_config(path: Path | None = None) -> ProjectConfig | None:
    """Load and validate the project configuration.

    Args:
        path: Configuration file; defaults to CONFIG_FILE.

    Returns:
        The validated configuration, or None if the file doesn't exist.

    Raises:
        ConfigurationError: If the file is not valid YAML or fails validation.
    """
    config_path = path or CONFIG_FILE
    if not config_path.exists():
        return None
    try:
        data = yaml.safe_load(config_path.read_text()) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Invalid configuration in {config_path}: expected a mapping")
    try:
        return ProjectConfig.from_env(data)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration in {config_path}: {_describe_validation_error(e)}"
        ) from e
