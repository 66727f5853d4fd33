"""Output formatters for fstack commands.

Commands print routing plans and stack information as a Rich table, JSON
or YAML through a common formatter interface.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from enum import StrEnum
from typing import TYPE_CHECKING, Any

import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from fargate_stack.integrations.aws.models.routing import ForwardAction

if TYPE_CHECKING:
    from fargate_stack.integrations.aws.models.routing import RoutingPlan
    from fargate_stack.integrations.aws.models.service import RoutingCondition


class OutputFormat(StrEnum):
    """Supported output formats for CLI commands."""

    TABLE = "table"
    JSON = "json"
    YAML = "yaml"


class TemplateFormat(StrEnum):
    """Serialization formats for synthesized templates."""

    JSON = "json"
    YAML = "yaml"


def render_template(template: dict[str, Any], fmt: TemplateFormat = TemplateFormat.JSON) -> str:
    """Serialize a template; YAML uses the long-form ``Fn::`` intrinsic syntax."""
    if fmt == TemplateFormat.YAML:
        return yaml.safe_dump(template, sort_keys=False, default_flow_style=False)
    return json.dumps(template, indent=2) + "\n"


def plan_to_dict(plan: RoutingPlan) -> dict[str, Any]:
    """Plain-data view of a plan for JSON and YAML output."""
    data: dict[str, Any] = plan.model_dump(mode="json")
    data["default_target"] = plan.default_target
    return data


def describe_conditions(conditions: tuple[RoutingCondition, ...]) -> str:
    return " AND ".join(f"{c.field} in [{', '.join(c.values)}]" for c in conditions)


class OutputFormatter(ABC):
    """Base class for output formatters."""

    def __init__(self, console: Console) -> None:
        self.console = console

    @abstractmethod
    def format_plan(self, plan: RoutingPlan, title: str = "") -> None:
        """Display a routing plan."""

    @abstractmethod
    def format_dict(self, data: dict[str, Any], title: str = "") -> None:
        """Display a mapping."""

    def _print_raw(self, text: str) -> None:
        self.console.print(text, markup=False, highlight=False, soft_wrap=True)


class TableFormatter(OutputFormatter):
    """Rich table output, for terminals."""

    def format_plan(self, plan: RoutingPlan, title: str = "") -> None:
        """Show rules in evaluation order, then the default and redirect."""
        table = Table(title=title or "Routing Plan", show_header=True)
        table.add_column("Priority", justify="right", no_wrap=True)
        table.add_column("Service", style="cyan", no_wrap=True)
        table.add_column("Conditions", overflow="fold")
        table.add_column("Action", style="green")

        listener = f"HTTPS:{plan.listener.port}"
        for rule in plan.rules:
            table.add_row(
                str(rule.priority),
                escape(rule.target_id),
                escape(describe_conditions(rule.conditions)),
                f"{listener} forward to :{rule.target_port}",
            )

        default = plan.default_action
        if isinstance(default, ForwardAction):
            table.add_row(
                "default",
                escape(default.target_id),
                "[dim]any[/dim]",
                f"{listener} forward to :{default.target_port}",
            )
        else:
            table.add_row(
                "default",
                "[dim]-[/dim]",
                "[dim]any[/dim]",
                f"{listener} fixed {default.status_code} {default.message_body}",
            )

        redirect = plan.redirect
        table.add_row(
            "-",
            "[dim]-[/dim]",
            f"{redirect.protocol}:{redirect.port}",
            f"redirect {redirect.status_code} to "
            f"{redirect.redirect_protocol}:{redirect.redirect_port}",
        )

        self.console.print(table)
        self.console.print(f"\n[dim]Rules: {len(plan.rules)}[/dim]")

    def format_dict(self, data: dict[str, Any], title: str = "") -> None:
        table = Table(title=title, show_header=True)
        table.add_column("Key", style="cyan", no_wrap=True)
        table.add_column("Value", style="green", overflow="fold")
        for key, value in data.items():
            table.add_row(escape(key), escape(self._format_value(value)))
        self.console.print(table)

    def _format_value(self, value: Any) -> str:
        if isinstance(value, dict):
            if not value:
                return "-"
            return "\n".join(f"{k}: {v}" for k, v in value.items())
        if value is None or value == "":
            return "-"
        return str(value)


class JsonFormatter(OutputFormatter):
    """Indented JSON output, for scripts."""

    def format_plan(self, plan: RoutingPlan, title: str = "") -> None:
        self._print_raw(json.dumps(plan_to_dict(plan), indent=2))

    def format_dict(self, data: dict[str, Any], title: str = "") -> None:
        self._print_raw(json.dumps(data, indent=2, default=str))


class YamlFormatter(OutputFormatter):
    """YAML output."""

    def format_plan(self, plan: RoutingPlan, title: str = "") -> None:
        self._print_raw(yaml.safe_dump(plan_to_dict(plan), sort_keys=False).rstrip())

    def format_dict(self, data: dict[str, Any], title: str = "") -> None:
        self._print_raw(yaml.safe_dump(data, sort_keys=False, default_flow_style=False).rstrip())


FORMATTERS: dict[OutputFormat, type[OutputFormatter]] = {
    OutputFormat.TABLE: TableFormatter,
    OutputFormat.JSON: JsonFormatter,
    OutputFormat.YAML: YamlFormatter,
}


def get_formatter(output_format: OutputFormat, console: Console) -> OutputFormatter:
    """Return the formatter for ``output_format``."""
    return FORMATTERS[output_format](console)
