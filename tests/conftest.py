"""Shared pytest fixtures for fargate_stack tests."""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Generator
from pathlib import Path
from unittest.mock import patch

import pytest
import typer
from typer.testing import CliRunner

from fargate_stack.cli.main import app
from fargate_stack.integrations.aws.models import (
    ContainerImage,
    DomainProperties,
    RoutingCondition,
    ServiceSpec,
)

SAMPLE_CONFIG = """\
version: "1.0"
app_name: AppName
region: eu-west-1
account: "123456789012"
domain:
  domain_name: example.com
  subdomain_name: site
  certificate_identifier: 11111111-2222-3333-4444-555555555555
environments:
  prod:
    services:
      - id: AppName1
        image:
          asset: ./app
        container_port: 80
        environment:
          APP_ENVIRONMENT: env-AppName1-prod
        conditions:
          - path_patterns: ["/example*"]
      - id: EcsSample
        image: amazon/amazon-ecs-sample
        container_port: 80
        conditions:
          - host_header: site.example.com
    tags:
      - name: Application
        value: starter-app
  dev:
    subdomain_name: site-dev
    services:
      - id: EcsSample
        image: amazon/amazon-ecs-sample
        container_port: 80
"""


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def temp_dir() -> Generator[Path]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def config_file(temp_dir: Path) -> Path:
    """Write a project configuration with a prod and a dev environment."""
    config_path = temp_dir / "stack.yaml"
    config_path.write_text(SAMPLE_CONFIG)
    return config_path


@pytest.fixture
def three_services() -> list[ServiceSpec]:
    """Two path-routed services followed by a host-routed one."""
    return [
        ServiceSpec(
            id="api",
            image=ContainerImage.from_registry("example/api:1.0"),
            container_port=8080,
            conditions=(RoutingCondition.path_patterns("/api*"),),
        ),
        ServiceSpec(
            id="web",
            image=ContainerImage.from_asset("./web"),
            container_port=80,
            environment={"APP_ENVIRONMENT": "env-web-prod"},
            conditions=(RoutingCondition.path_patterns("/web*"),),
        ),
        ServiceSpec(
            id="admin",
            image=ContainerImage.from_registry("example/admin:2.3"),
            container_port=3000,
            conditions=(RoutingCondition.host_headers("admin.example.com"),),
        ),
    ]


@pytest.fixture
def default_service() -> ServiceSpec:
    """A service without conditions."""
    return ServiceSpec(
        id="EcsSample",
        image=ContainerImage.from_registry("amazon/amazon-ecs-sample"),
        container_port=80,
    )


@pytest.fixture
def domain() -> DomainProperties:
    return DomainProperties(
        domain_name="example.com",
        subdomain_name="site",
        domain_certificate_arn="arn:aws:acm:eu-west-1:123456789012:certificate/abc-123",
    )


@pytest.fixture(autouse=True)
def reset_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset environment variables for each test."""
    for key in list(os.environ.keys()):
        if key.startswith("FSTACK_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def isolate_log_files(tmp_path: Path) -> Generator[None]:
    """Keep log files out of the home directory and restore root handlers."""
    log_dir = tmp_path / "logs"
    root = logging.getLogger()
    original_handlers = list(root.handlers)
    original_level = root.level
    with (
        patch("fargate_stack.logging.config.LOG_DIR", log_dir),
        patch("fargate_stack.logging.config.LOG_FILE", log_dir / "fstack.log"),
    ):
        yield
    for handler in root.handlers:
        if handler not in original_handlers:
            handler.close()
    root.handlers = original_handlers
    root.setLevel(original_level)


@pytest.fixture
def capture_logs(caplog: pytest.LogCaptureFixture) -> pytest.LogCaptureFixture:
    """Fixture to capture log output."""
    caplog.set_level(logging.DEBUG)
    return caplog


@pytest.fixture
def cli_app() -> typer.Typer:
    """Return the CLI app for testing."""
    return app
