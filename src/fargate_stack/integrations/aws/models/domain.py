"""Pydantic models for the stack's account, domain and network settings."""

from __future__ import annotations

import re

from pydantic import Field, field_validator, model_validator

from fargate_stack.integrations.aws.models.base import StackModelBase

_ACCOUNT_PATTERN = re.compile(r"^\d{12}$")
_REGION_PATTERN = re.compile(r"^[a-z]{2}(-[a-z]+)+-\d$")


class StackEnvironment(StackModelBase):
    """Account and region a stack is deployed into.

    Attributes:
        region: Region name (e.g. ``eu-west-1``).
        account: 12-digit account id.
    """

    region: str
    account: str

    @field_validator("region")
    @classmethod
    def validate_region(cls, v: str) -> str:
        if not _REGION_PATTERN.match(v):
            raise ValueError(f"invalid region: {v!r}")
        return v

    @field_validator("account", mode="before")
    @classmethod
    def validate_account(cls, v: object) -> str:
        """Accept the account as int or str; YAML drops quotes easily."""
        account = str(v).strip()
        if not _ACCOUNT_PATTERN.match(account):
            raise ValueError("account must be a 12-digit id")
        return account

    def certificate_arn(self, certificate_identifier: str) -> str:
        """Build the ACM certificate ARN for an identifier in this account."""
        return f"arn:aws:acm:{self.region}:{self.account}:certificate/{certificate_identifier}"


class DomainProperties(StackModelBase):
    """Hosted zone, record name and TLS certificate of the public endpoint.

    Attributes:
        domain_name: Hosted zone domain (e.g. ``example.com``).
        subdomain_name: Record name within the zone (e.g. ``site``).
        domain_certificate_arn: ARN of the certificate served by the HTTPS listener.
    """

    domain_name: str = Field(min_length=1)
    subdomain_name: str = Field(min_length=1)
    domain_certificate_arn: str

    @field_validator("domain_name")
    @classmethod
    def normalize_domain(cls, v: str) -> str:
        return v.rstrip(".").lower()

    @field_validator("domain_certificate_arn")
    @classmethod
    def validate_certificate_arn(cls, v: str) -> str:
        if not v.startswith("arn:") or ":certificate/" not in v:
            raise ValueError("domain_certificate_arn must be a certificate ARN")
        return v

    @classmethod
    def from_certificate_identifier(
        cls,
        environment: StackEnvironment,
        certificate_identifier: str,
        domain_name: str,
        subdomain_name: str,
    ) -> DomainProperties:
        """Create domain properties for a certificate in the stack's account."""
        return cls(
            domain_name=domain_name,
            subdomain_name=subdomain_name,
            domain_certificate_arn=environment.certificate_arn(certificate_identifier),
        )

    @property
    def fqdn(self) -> str:
        """Fully qualified name of the public record."""
        return f"{self.subdomain_name}.{self.domain_name}"

    @property
    def hosted_zone_name(self) -> str:
        """Hosted zone name with the trailing dot Route 53 expects."""
        return f"{self.domain_name}."


class NetworkConfig(StackModelBase):
    """Network the stack runs in.

    Without ``vpc_id`` the stack creates its own VPC with one public subnet
    per availability zone, limited to ``max_azs`` to stay within quotas.

    Attributes:
        vpc_id: Existing VPC to use instead of creating one.
        subnet_ids: Public subnets of the existing VPC.
        max_azs: Availability zones spanned by a created VPC.
        cidr_block: Address range of a created VPC.
    """

    vpc_id: str | None = None
    subnet_ids: tuple[str, ...] = ()
    max_azs: int = Field(default=2, ge=2, le=6)
    cidr_block: str = "10.0.0.0/16"

    @model_validator(mode="after")
    def check_existing_vpc(self) -> NetworkConfig:
        """An existing VPC needs subnets in at least two zones for the load balancer."""
        if self.vpc_id and len(self.subnet_ids) < 2:
            raise ValueError("an existing vpc_id requires at least two subnet_ids")
        if self.subnet_ids and not self.vpc_id:
            raise ValueError("subnet_ids require vpc_id")
        return self

    @property
    def creates_vpc(self) -> bool:
        return self.vpc_id is None
