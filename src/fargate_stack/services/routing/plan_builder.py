"""Routing plan construction.

Maps an ordered list of service declarations onto load balancer listener
rules. Priorities come from declaration order, so the same list always
yields the same plan. The builder is a pure function: it either returns
a complete plan or raises ConfigurationError before building anything.
"""

from __future__ import annotations

from collections.abc import Sequence

from fargate_stack.integrations.aws.exceptions import ConfigurationError
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
from fargate_stack.integrations.aws.models.service import ServiceSpec

BASE_PRIORITY = 20
PRIORITY_STEP = 10

# Load balancer limits
MAX_RULE_PRIORITY = 50000
MAX_CONDITION_VALUES = 5
MIN_PORT = 1
MAX_PORT = 65535


def rule_priority(index: int) -> int:
    """Priority of the rule for the service declared at ``index``."""
    return BASE_PRIORITY + index * PRIORITY_STEP


def _validate_service(service: ServiceSpec, seen_ids: set[str]) -> None:
    if not service.id:
        raise ConfigurationError("service id must be non-empty", field="id")
    if service.id in seen_ids:
        raise ConfigurationError(
            f"duplicate service id '{service.id}'", service_id=service.id, field="id"
        )
    if not MIN_PORT <= service.container_port <= MAX_PORT:
        raise ConfigurationError(
            f"container port {service.container_port} is outside {MIN_PORT}-{MAX_PORT}",
            service_id=service.id,
            field="container_port",
        )
    if any(not key for key in service.environment):
        raise ConfigurationError(
            "environment variable names must be non-empty",
            service_id=service.id,
            field="environment",
        )
    if service.condition_value_count > MAX_CONDITION_VALUES:
        raise ConfigurationError(
            f"a rule allows at most {MAX_CONDITION_VALUES} condition values, "
            f"got {service.condition_value_count}",
            service_id=service.id,
            field="conditions",
        )


def build_plan(services: Sequence[ServiceSpec]) -> RoutingPlan:
    """Build the listener routing plan for ``services``.

    Every service with conditions gets a rule with priority
    ``BASE_PRIORITY + index * PRIORITY_STEP``, where ``index`` is its
    position in ``services``. At most one service may omit conditions;
    it becomes the listener's default action. Without one, unmatched
    requests get a fixed 404. A single HTTP to HTTPS redirect is always
    planned.

    Args:
        services: Service declarations in priority order.

    Returns:
        The immutable routing plan.

    Raises:
        ConfigurationError: If ``services`` is empty, ids repeat, a port is
            out of range, an environment key is empty, more than one
            service lacks conditions, or load balancer limits are exceeded.
    """
    if not services:
        raise ConfigurationError("at least one service must be declared")

    seen_ids: set[str] = set()
    default_services: list[ServiceSpec] = []
    rules: list[ListenerRule] = []

    for index, service in enumerate(services):
        _validate_service(service, seen_ids)
        seen_ids.add(service.id)

        if service.is_default:
            default_services.append(service)
            continue

        priority = rule_priority(index)
        if priority > MAX_RULE_PRIORITY:
            raise ConfigurationError(
                f"rule priority {priority} exceeds {MAX_RULE_PRIORITY}",
                service_id=service.id,
                field="conditions",
            )
        rules.append(
            ListenerRule(
                priority=priority,
                conditions=service.conditions,
                target_id=service.id,
                target_port=service.container_port,
            )
        )

    if len(default_services) > 1:
        ids = ", ".join(service.id for service in default_services)
        raise ConfigurationError(
            f"only one service may omit routing conditions, found: {ids}",
            field="conditions",
        )

    default_action: ListenerAction
    if default_services:
        default = default_services[0]
        default_action = ForwardAction(target_id=default.id, target_port=default.container_port)
    else:
        default_action = FixedResponseAction()

    listener = HttpsListener()
    redirect = RedirectRule()
    return RoutingPlan(
        listener=listener,
        redirect=redirect,
        rules=tuple(rules),
        default_action=default_action,
        ingress_rules=(
            IngressRule(port=listener.port, description="HTTPS listener"),
            IngressRule(port=redirect.port, description="HTTP to HTTPS redirect"),
        ),
    )
