"""Pydantic models for stack declarations and routing plans."""

from fargate_stack.integrations.aws.models.base import StackModelBase, Tag
from fargate_stack.integrations.aws.models.domain import (
    DomainProperties,
    NetworkConfig,
    StackEnvironment,
)
from fargate_stack.integrations.aws.models.routing import (
    FixedResponseAction,
    ForwardAction,
    HttpsListener,
    IngressRule,
    ListenerAction,
    ListenerRule,
    RedirectRule,
    RoutingPlan,
)
from fargate_stack.integrations.aws.models.service import (
    ContainerImage,
    RoutingCondition,
    ServiceSpec,
)

__all__ = [
    "ContainerImage",
    "DomainProperties",
    "FixedResponseAction",
    "ForwardAction",
    "HttpsListener",
    "IngressRule",
    "ListenerAction",
    "ListenerRule",
    "NetworkConfig",
    "RedirectRule",
    "RoutingCondition",
    "RoutingPlan",
    "ServiceSpec",
    "StackEnvironment",
    "StackModelBase",
    "Tag",
]
