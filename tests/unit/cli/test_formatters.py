"""Unit tests for CLI output formatters."""

from __future__ import annotations

import io
import json

import pytest
import yaml
from rich.console import Console

from fargate_stack.cli.output import OutputFormat, TemplateFormat, get_formatter, render_template
from fargate_stack.cli.output.formatters import (
    JsonFormatter,
    TableFormatter,
    YamlFormatter,
    describe_conditions,
    plan_to_dict,
)
from fargate_stack.integrations.aws.models import RoutingCondition, ServiceSpec
from fargate_stack.services.routing import build_plan


@pytest.fixture
def buffer() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def console(buffer: io.StringIO) -> Console:
    """Wide, colourless console writing into a buffer."""
    return Console(file=buffer, width=200, color_system=None)


class TestHelpers:
    """Tests for module-level helpers."""

    @pytest.mark.unit
    def test_describe_conditions(self) -> None:
        conditions = (
            RoutingCondition.path_patterns("/api*", "/v1*"),
            RoutingCondition.host_headers("api.example.com"),
        )

        assert describe_conditions(conditions) == (
            "path-pattern in [/api*, /v1*] AND host-header in [api.example.com]"
        )

    @pytest.mark.unit
    def test_plan_to_dict(self, three_services: list[ServiceSpec]) -> None:
        data = plan_to_dict(build_plan(three_services))

        assert [rule["priority"] for rule in data["rules"]] == [20, 30, 40]
        assert data["default_action"]["type"] == "fixed-response"
        assert data["default_target"] is None

    @pytest.mark.unit
    def test_render_template_json(self) -> None:
        rendered = render_template({"Resources": {"A": {"Type": "AWS::ECS::Cluster"}}})

        assert rendered.endswith("\n")
        assert json.loads(rendered) == {"Resources": {"A": {"Type": "AWS::ECS::Cluster"}}}

    @pytest.mark.unit
    def test_render_template_yaml_keeps_order(self) -> None:
        template = {"AWSTemplateFormatVersion": "2010-09-09", "Resources": {}}

        rendered = render_template(template, TemplateFormat.YAML)

        assert rendered.index("AWSTemplateFormatVersion") < rendered.index("Resources")
        assert yaml.safe_load(rendered) == template

    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("output_format", "formatter_type"),
        [
            (OutputFormat.TABLE, TableFormatter),
            (OutputFormat.JSON, JsonFormatter),
            (OutputFormat.YAML, YamlFormatter),
        ],
    )
    def test_get_formatter(
        self, console: Console, output_format: OutputFormat, formatter_type: type
    ) -> None:
        assert isinstance(get_formatter(output_format, console), formatter_type)


class TestTableFormatter:
    """Tests for table output."""

    @pytest.mark.unit
    def test_plan_with_fallback(
        self, console: Console, buffer: io.StringIO, three_services: list[ServiceSpec]
    ) -> None:
        TableFormatter(console).format_plan(build_plan(three_services), title="AppName-prod")

        output = buffer.getvalue()
        assert "AppName-prod" in output
        assert "path-pattern in [/api*]" in output
        assert "HTTPS:443 forward to :8080" in output
        assert "fixed 404 Not Found" in output
        assert "redirect HTTP_302 to HTTPS:443" in output
        assert "Rules: 3" in output

    @pytest.mark.unit
    def test_plan_with_default_service(
        self, console: Console, buffer: io.StringIO, default_service: ServiceSpec
    ) -> None:
        TableFormatter(console).format_plan(build_plan([default_service]))

        output = buffer.getvalue()
        assert "EcsSample" in output
        assert "fixed 404" not in output
        assert "Rules: 0" in output

    @pytest.mark.unit
    def test_dict(self, console: Console, buffer: io.StringIO) -> None:
        TableFormatter(console).format_dict(
            {"status": "CREATE_COMPLETE", "reason": "", "outputs": {"Url": "https://x"}}
        )

        output = buffer.getvalue()
        assert "CREATE_COMPLETE" in output
        assert "Url: https://x" in output


class TestStructuredFormatters:
    """Tests for JSON and YAML output."""

    @pytest.mark.unit
    def test_json_plan(
        self, console: Console, buffer: io.StringIO, default_service: ServiceSpec
    ) -> None:
        JsonFormatter(console).format_plan(build_plan([default_service]))

        data = json.loads(buffer.getvalue())
        assert data["default_target"] == "EcsSample"
        assert data["rules"] == []
        assert data["redirect"]["redirect_port"] == 443

    @pytest.mark.unit
    def test_yaml_plan(
        self, console: Console, buffer: io.StringIO, three_services: list[ServiceSpec]
    ) -> None:
        YamlFormatter(console).format_plan(build_plan(three_services))

        data = yaml.safe_load(buffer.getvalue())
        assert [rule["target_id"] for rule in data["rules"]] == ["api", "web", "admin"]

    @pytest.mark.unit
    def test_json_dict(self, console: Console, buffer: io.StringIO) -> None:
        JsonFormatter(console).format_dict({"stack_name": "AppName-prod", "outputs": {}})

        assert json.loads(buffer.getvalue()) == {"stack_name": "AppName-prod", "outputs": {}}
