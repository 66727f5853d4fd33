"""Load balancer routing plans."""

from fargate_stack.services.routing.plan_builder import (
    BASE_PRIORITY,
    PRIORITY_STEP,
    build_plan,
)

__all__ = ["BASE_PRIORITY", "PRIORITY_STEP", "build_plan"]
