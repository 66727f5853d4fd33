"""Pydantic models for declared container services.

A ServiceSpec describes one deployable container: which image to run,
the port it listens on, its environment, and the listener conditions
that route traffic to it. A service without conditions is the
listener's default target.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field, field_validator, model_validator

from fargate_stack.integrations.aws.models.base import StackModelBase

ConditionField = Literal["path-pattern", "host-header"]
ImageKind = Literal["registry", "asset"]

# YAML shorthand key -> condition field
_CONDITION_KEYS: dict[str, ConditionField] = {
    "path_pattern": "path-pattern",
    "path_patterns": "path-pattern",
    "host_header": "host-header",
    "host_headers": "host-header",
}

# Fargate task CPU units -> smallest task memory (MiB) allowed with them
FARGATE_TASK_MEMORY: dict[int, int] = {256: 512, 512: 1024, 1024: 2048, 2048: 4096, 4096: 8192}


class RoutingCondition(StackModelBase):
    """A single listener rule condition.

    Accepts either the explicit form ``{"field": "path-pattern", "values": [...]}``
    or a shorthand such as ``{"path_patterns": ["/api*"]}`` or
    ``{"host_header": "site.example.com"}``.

    Attributes:
        field: Which part of the request is matched.
        values: Patterns to match; any one matching satisfies the condition.
    """

    field: ConditionField = Field(description="Matched request attribute")
    values: tuple[str, ...] = Field(description="Match patterns")

    @model_validator(mode="before")
    @classmethod
    def expand_shorthand(cls, data: Any) -> Any:
        """Convert shorthand keys into the explicit field/values form."""
        if not isinstance(data, dict) or "field" in data:
            return data
        keys = [key for key in data if key in _CONDITION_KEYS]
        if len(keys) != 1 or len(data) != 1:
            valid = ", ".join(sorted(_CONDITION_KEYS))
            raise ValueError(f"condition must have exactly one of: {valid}")
        key = keys[0]
        raw = data[key]
        if isinstance(raw, str):
            return {"field": _CONDITION_KEYS[key], "values": [raw]}
        if not isinstance(raw, list | tuple) or not all(isinstance(v, str) for v in raw):
            raise ValueError(f"{key} must be a string or a list of strings")
        return {"field": _CONDITION_KEYS[key], "values": list(raw)}

    @field_validator("values")
    @classmethod
    def validate_values(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Require at least one non-empty pattern."""
        if not v:
            raise ValueError("condition needs at least one value")
        if any(not value for value in v):
            raise ValueError("condition values must be non-empty")
        return v

    @classmethod
    def path_patterns(cls, *patterns: str) -> RoutingCondition:
        """Create a path-pattern condition."""
        return cls(field="path-pattern", values=patterns)

    @classmethod
    def host_headers(cls, *hosts: str) -> RoutingCondition:
        """Create a host-header condition."""
        return cls(field="host-header", values=hosts)


class ContainerImage(StackModelBase):
    """Reference to the image a service runs.

    Registry images are used as-is. Asset images are built from a local
    directory outside of this tool; their pushed URI is supplied when the
    stack is deployed.

    Attributes:
        kind: ``registry`` or ``asset``.
        reference: Registry image name, or build context directory.
    """

    kind: ImageKind = "registry"
    reference: str = Field(min_length=1)

    @model_validator(mode="before")
    @classmethod
    def expand_shorthand(cls, data: Any) -> Any:
        """Accept a bare string or a single ``asset``/``registry`` key."""
        if isinstance(data, str):
            return {"kind": "registry", "reference": data}
        if isinstance(data, dict) and "kind" not in data and len(data) == 1:
            key, value = next(iter(data.items()))
            if key in ("registry", "asset"):
                return {"kind": key, "reference": value}
        return data

    @classmethod
    def from_registry(cls, name: str) -> ContainerImage:
        return cls(kind="registry", reference=name)

    @classmethod
    def from_asset(cls, directory: str) -> ContainerImage:
        return cls(kind="asset", reference=directory)

    @property
    def is_asset(self) -> bool:
        return self.kind == "asset"


class ServiceSpec(StackModelBase):
    """Declaration of one container service behind the load balancer.

    Port range, id uniqueness and environment keys are validated when a
    routing plan is built, so that every declaration problem surfaces as
    a ConfigurationError from one place.

    The single-field routing of earlier configuration files
    (``path_pattern`` / ``host_header``) is still accepted and folded
    into ``conditions``.

    Attributes:
        id: Unique service id, used to name every derived resource.
        image: Container image to run.
        container_port: Port the container listens on.
        environment: Environment variables for the container.
        conditions: Listener conditions; empty marks the default service.
        memory_limit_mib: Hard memory limit for the container.
        cpu: Task CPU units.
        desired_count: Number of tasks to keep running.
    """

    id: str = Field(description="Unique service id")
    image: ContainerImage = Field(description="Container image")
    container_port: int = Field(description="Container port")
    environment: dict[str, str] = Field(default_factory=dict, description="Environment variables")
    conditions: tuple[RoutingCondition, ...] = Field(
        default=(), description="Listener conditions (empty for the default service)"
    )
    memory_limit_mib: int = Field(default=256, gt=0, description="Container memory limit")
    cpu: int = Field(default=256, description="Task CPU units")
    desired_count: int = Field(default=1, ge=0, description="Desired task count")

    @model_validator(mode="before")
    @classmethod
    def fold_legacy_routing(cls, data: Any) -> Any:
        """Move ``path_pattern``/``host_header`` into ``conditions``."""
        if not isinstance(data, dict):
            return data
        if "path_pattern" not in data and "host_header" not in data:
            return data
        data = dict(data)
        conditions = list(data.pop("conditions", None) or [])
        if path_pattern := data.pop("path_pattern", None):
            conditions.append({"field": "path-pattern", "values": [path_pattern]})
        if host_header := data.pop("host_header", None):
            conditions.append({"field": "host-header", "values": [host_header]})
        data["conditions"] = conditions
        return data

    @field_validator("cpu")
    @classmethod
    def validate_cpu(cls, v: int) -> int:
        """Ensure CPU is a valid Fargate task size."""
        if v not in FARGATE_TASK_MEMORY:
            valid = ", ".join(str(unit) for unit in sorted(FARGATE_TASK_MEMORY))
            raise ValueError(f"cpu must be one of: {valid}")
        return v

    @model_validator(mode="after")
    def check_memory_fits_task(self) -> ServiceSpec:
        """The container limit must fit in the task memory for its CPU size."""
        if self.memory_limit_mib > self.task_memory_mib:
            raise ValueError(
                f"memory_limit_mib {self.memory_limit_mib} exceeds task memory "
                f"{self.task_memory_mib} for cpu {self.cpu}"
            )
        return self

    @property
    def task_memory_mib(self) -> int:
        """Task-level memory for this service's CPU size."""
        return FARGATE_TASK_MEMORY[self.cpu]

    @property
    def is_default(self) -> bool:
        """True when the service has no conditions."""
        return not self.conditions

    @property
    def condition_value_count(self) -> int:
        return sum(len(condition.values) for condition in self.conditions)
