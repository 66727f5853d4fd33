"""Pydantic models for load balancer routing plans.

A RoutingPlan is the complete desired state of the load balancer's
listeners: the HTTPS listener with its prioritized rules and default
action, the plaintext listener that redirects to HTTPS, and the ingress
the two listeners need. Plans are built by
:func:`fargate_stack.services.routing.plan_builder.build_plan` and are
immutable.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import Field

from fargate_stack.integrations.aws.models.base import StackModelBase
from fargate_stack.integrations.aws.models.service import RoutingCondition

HTTPS_PORT = 443
HTTP_PORT = 80


class HttpsListener(StackModelBase):
    """TLS-terminating listener that carries the routing rules."""

    port: int = HTTPS_PORT
    protocol: Literal["HTTPS"] = "HTTPS"


class RedirectRule(StackModelBase):
    """Plaintext listener action forcing clients onto the HTTPS listener.

    Attributes:
        port: Port of the plaintext listener.
        protocol: Protocol of the plaintext listener.
        redirect_protocol: Protocol clients are redirected to.
        redirect_port: Port clients are redirected to.
        status_code: Redirect status code.
    """

    port: int = HTTP_PORT
    protocol: Literal["HTTP"] = "HTTP"
    redirect_protocol: Literal["HTTPS"] = "HTTPS"
    redirect_port: int = HTTPS_PORT
    status_code: Literal["HTTP_301", "HTTP_302"] = "HTTP_302"


class ForwardAction(StackModelBase):
    """Forward matching requests to a service's target group."""

    type: Literal["forward"] = "forward"
    target_id: str
    target_port: int


class FixedResponseAction(StackModelBase):
    """Answer matching requests directly from the load balancer."""

    type: Literal["fixed-response"] = "fixed-response"
    status_code: str = "404"
    content_type: str = "text/plain"
    message_body: str = "Not Found"


ListenerAction = Annotated[ForwardAction | FixedResponseAction, Field(discriminator="type")]


class ListenerRule(StackModelBase):
    """A prioritized HTTPS listener rule forwarding to one service.

    Attributes:
        priority: Evaluation order; lower is evaluated first.
        conditions: All conditions must match for the rule to apply.
        target_id: Id of the service receiving matching requests.
        target_port: Container port of that service.
    """

    priority: int = Field(ge=1)
    conditions: tuple[RoutingCondition, ...] = Field(min_length=1)
    target_id: str
    target_port: int

    @property
    def action(self) -> ForwardAction:
        return ForwardAction(target_id=self.target_id, target_port=self.target_port)


class IngressRule(StackModelBase):
    """Inbound traffic the load balancer's security group must allow."""

    port: int
    protocol: Literal["tcp"] = "tcp"
    cidr: str = "0.0.0.0/0"
    description: str = ""


class RoutingPlan(StackModelBase):
    """Complete listener plan for the load balancer.

    The default action is either a forward to the one service declared
    without conditions, or the fixed 404 response when there is none.

    Attributes:
        listener: The HTTPS listener the rules attach to.
        redirect: The HTTP to HTTPS redirect.
        rules: Rules in strictly increasing priority order.
        default_action: Action taken when no rule matches.
        ingress_rules: World-wide ingress needed by both listeners.
    """

    listener: HttpsListener = Field(default_factory=HttpsListener)
    redirect: RedirectRule = Field(default_factory=RedirectRule)
    rules: tuple[ListenerRule, ...] = ()
    default_action: ListenerAction = Field(default_factory=FixedResponseAction)
    ingress_rules: tuple[IngressRule, ...] = ()

    @property
    def default_target(self) -> str | None:
        """Id of the default service, or None when the 404 fallback applies."""
        if isinstance(self.default_action, ForwardAction):
            return self.default_action.target_id
        return None

    @property
    def fallback(self) -> FixedResponseAction | None:
        """The fixed 404 action, or None when a default service is wired."""
        if isinstance(self.default_action, FixedResponseAction):
            return self.default_action
        return None

    @property
    def priorities(self) -> list[int]:
        return [rule.priority for rule in self.rules]

    def rule_for(self, service_id: str) -> ListenerRule | None:
        """Return the rule targeting a service, if it has one."""
        for rule in self.rules:
            if rule.target_id == service_id:
                return rule
        return None
