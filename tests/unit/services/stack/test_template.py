"""Unit tests for CloudFormation template synthesis."""

from __future__ import annotations

import json
from typing import Any

import pytest

from fargate_stack.integrations.aws.exceptions import ConfigurationError
from fargate_stack.integrations.aws.models import (
    ContainerImage,
    DomainProperties,
    ForwardAction,
    NetworkConfig,
    RoutingCondition,
    RoutingPlan,
    ServiceSpec,
    Tag,
)
from fargate_stack.services.routing import build_plan
from fargate_stack.services.stack.template import (
    StackTemplateBuilder,
    condition_to_cfn,
    logical_id,
)

STACK = "AppName-prod"


def _build(
    services: list[ServiceSpec],
    domain: DomainProperties,
    **kwargs: Any,
) -> dict[str, Any]:
    return StackTemplateBuilder(STACK, services, build_plan(services), domain, **kwargs).build()


def _of_type(template: dict[str, Any], resource_type: str) -> dict[str, Any]:
    return {
        name: resource
        for name, resource in template["Resources"].items()
        if resource["Type"] == resource_type
    }


@pytest.mark.unit
class TestHelpers:
    """Tests for logical ids and condition rendering."""

    def test_logical_id_strips_punctuation(self) -> None:
        assert logical_id("AppName-prod", "web_1") == "AppNameprodweb1"

    def test_path_condition(self) -> None:
        assert condition_to_cfn(RoutingCondition.path_patterns("/a*", "/b*")) == {
            "Field": "path-pattern",
            "PathPatternConfig": {"Values": ["/a*", "/b*"]},
        }

    def test_host_condition(self) -> None:
        assert condition_to_cfn(RoutingCondition.host_headers("site.example.com")) == {
            "Field": "host-header",
            "HostHeaderConfig": {"Values": ["site.example.com"]},
        }


@pytest.mark.unit
class TestStackTemplateBuilder:
    """Tests for the synthesized template."""

    def test_template_is_json_serializable(
        self, three_services: list[ServiceSpec], domain: DomainProperties
    ) -> None:
        template = _build(three_services, domain)

        assert json.loads(json.dumps(template)) == template
        assert template["AWSTemplateFormatVersion"] == "2010-09-09"

    def test_listener_rules_follow_plan(
        self, three_services: list[ServiceSpec], domain: DomainProperties
    ) -> None:
        template = _build(three_services, domain)

        rules = _of_type(template, "AWS::ElasticLoadBalancingV2::ListenerRule")
        assert sorted(rules) == ["adminListenerRule", "apiListenerRule", "webListenerRule"]
        api = rules["apiListenerRule"]["Properties"]
        assert api["Priority"] == 20
        assert api["ListenerArn"] == {"Ref": "AppNameprodHttpsListener"}
        assert api["Conditions"] == [
            {"Field": "path-pattern", "PathPatternConfig": {"Values": ["/api*"]}}
        ]
        assert api["Actions"] == [{"Type": "forward", "TargetGroupArn": {"Ref": "apiTargetGroup"}}]
        assert rules["adminListenerRule"]["Properties"]["Priority"] == 40

    def test_https_listener_with_fallback(
        self, three_services: list[ServiceSpec], domain: DomainProperties
    ) -> None:
        template = _build(three_services, domain)

        listener = template["Resources"]["AppNameprodHttpsListener"]["Properties"]
        assert listener["Port"] == 443
        assert listener["Protocol"] == "HTTPS"
        assert listener["Certificates"] == [{"CertificateArn": domain.domain_certificate_arn}]
        assert listener["DefaultActions"] == [
            {
                "Type": "fixed-response",
                "FixedResponseConfig": {
                    "StatusCode": "404",
                    "ContentType": "text/plain",
                    "MessageBody": "Not Found",
                },
            }
        ]

    def test_https_listener_with_default_service(
        self,
        three_services: list[ServiceSpec],
        default_service: ServiceSpec,
        domain: DomainProperties,
    ) -> None:
        template = _build([*three_services, default_service], domain)

        listener = template["Resources"]["AppNameprodHttpsListener"]["Properties"]
        assert listener["DefaultActions"] == [
            {"Type": "forward", "TargetGroupArn": {"Ref": "EcsSampleTargetGroup"}}
        ]
        assert "EcsSampleListenerRule" not in template["Resources"]

    def test_http_redirect(self, default_service: ServiceSpec, domain: DomainProperties) -> None:
        template = _build([default_service], domain)

        redirect = template["Resources"]["AppNameprodHttpRedirect"]["Properties"]
        assert redirect["Port"] == 80
        assert redirect["Protocol"] == "HTTP"
        assert redirect["DefaultActions"] == [
            {
                "Type": "redirect",
                "RedirectConfig": {"Protocol": "HTTPS", "Port": "443", "StatusCode": "HTTP_302"},
            }
        ]

    def test_one_fargate_service_per_declaration(
        self, three_services: list[ServiceSpec], domain: DomainProperties
    ) -> None:
        template = _build(three_services, domain)

        services = _of_type(template, "AWS::ECS::Service")
        assert sorted(services) == ["adminFargateService", "apiFargateService", "webFargateService"]
        api = services["apiFargateService"]
        assert api["DependsOn"] == ["AppNameprodHttpsListener", "apiListenerRule"]
        assert api["Properties"]["LoadBalancers"] == [
            {
                "ContainerName": "apiContainer",
                "ContainerPort": 8080,
                "TargetGroupArn": {"Ref": "apiTargetGroup"},
            }
        ]

    def test_default_service_depends_only_on_listener(
        self, default_service: ServiceSpec, domain: DomainProperties
    ) -> None:
        template = _build([default_service], domain)

        service = template["Resources"]["EcsSampleFargateService"]
        assert service["DependsOn"] == ["AppNameprodHttpsListener"]

    def test_task_definition(
        self, three_services: list[ServiceSpec], domain: DomainProperties
    ) -> None:
        template = _build(three_services, domain)

        task = template["Resources"]["webTaskDefinition"]["Properties"]
        assert task["Cpu"] == "256"
        assert task["Memory"] == "512"
        assert task["RequiresCompatibilities"] == ["FARGATE"]
        container = task["ContainerDefinitions"][0]
        assert container["Name"] == "webContainer"
        assert container["Memory"] == 256
        assert container["PortMappings"] == [{"ContainerPort": 80, "Protocol": "tcp"}]
        assert container["Environment"] == [{"Name": "APP_ENVIRONMENT", "Value": "env-web-prod"}]

    def test_container_name_uses_sanitized_id(self, domain: DomainProperties) -> None:
        service = ServiceSpec(
            id="api.v1",
            image=ContainerImage.from_registry("example/api:1.0"),
            container_port=8080,
            conditions=(RoutingCondition.path_patterns("/v1*"),),
        )

        template = _build([service], domain)

        task = template["Resources"]["apiv1TaskDefinition"]["Properties"]
        assert task["ContainerDefinitions"][0]["Name"] == "apiv1Container"
        fargate_service = template["Resources"]["apiv1FargateService"]["Properties"]
        assert fargate_service["LoadBalancers"][0]["ContainerName"] == "apiv1Container"

    def test_asset_image_becomes_parameter(
        self, three_services: list[ServiceSpec], domain: DomainProperties
    ) -> None:
        builder = StackTemplateBuilder(STACK, three_services, build_plan(three_services), domain)

        template = builder.build()

        assert builder.image_parameters == {"web": "webImageUri"}
        assert template["Parameters"] == {
            "webImageUri": {"Type": "String", "Description": "Pushed image URI for web"}
        }
        web = template["Resources"]["webTaskDefinition"]["Properties"]
        assert web["ContainerDefinitions"][0]["Image"] == {"Ref": "webImageUri"}
        api = template["Resources"]["apiTaskDefinition"]["Properties"]
        assert api["ContainerDefinitions"][0]["Image"] == "example/api:1.0"

    def test_no_parameters_without_assets(
        self, default_service: ServiceSpec, domain: DomainProperties
    ) -> None:
        assert "Parameters" not in _build([default_service], domain)

    def test_dns_record_and_outputs(
        self, default_service: ServiceSpec, domain: DomainProperties
    ) -> None:
        template = _build([default_service], domain)

        record = template["Resources"]["AppNameprodSite"]["Properties"]
        assert record["HostedZoneName"] == "example.com."
        assert record["Name"] == "site.example.com."
        assert record["Type"] == "CNAME"
        assert record["ResourceRecords"] == [
            {"Fn::GetAtt": ["AppNameprodLoadBalancer", "DNSName"]}
        ]
        assert template["Outputs"]["AppNameprodUrl"] == {"Value": "https://site.example.com"}

    def test_load_balancer_ingress_from_plan(
        self, default_service: ServiceSpec, domain: DomainProperties
    ) -> None:
        template = _build([default_service], domain)

        group = template["Resources"]["AppNameprodLoadBalancerSecurityGroup"]["Properties"]
        assert [(rule["FromPort"], rule["CidrIp"]) for rule in group["SecurityGroupIngress"]] == [
            (443, "0.0.0.0/0"),
            (80, "0.0.0.0/0"),
        ]

    def test_creates_vpc_by_default(
        self, default_service: ServiceSpec, domain: DomainProperties
    ) -> None:
        template = _build([default_service], domain)

        assert "AppNameprodVpc" in template["Resources"]
        assert len(_of_type(template, "AWS::EC2::Subnet")) == 2
        load_balancer = template["Resources"]["AppNameprodLoadBalancer"]
        assert load_balancer["Properties"]["Subnets"] == [
            {"Ref": "AppNameprodPublicSubnet1"},
            {"Ref": "AppNameprodPublicSubnet2"},
        ]

    def test_existing_vpc(self, default_service: ServiceSpec, domain: DomainProperties) -> None:
        network = NetworkConfig(vpc_id="vpc-123", subnet_ids=("subnet-a", "subnet-b"))

        template = _build([default_service], domain, network=network)

        assert _of_type(template, "AWS::EC2::VPC") == {}
        target_group = template["Resources"]["EcsSampleTargetGroup"]["Properties"]
        assert target_group["VpcId"] == "vpc-123"
        load_balancer = template["Resources"]["AppNameprodLoadBalancer"]
        assert load_balancer["Properties"]["Subnets"] == ["subnet-a", "subnet-b"]
        assert "DependsOn" not in load_balancer

    def test_tags_applied(self, default_service: ServiceSpec, domain: DomainProperties) -> None:
        template = _build([default_service], domain, tags=[Tag(name="CostCenter", value="10001")])

        service = template["Resources"]["EcsSampleFargateService"]["Properties"]
        assert service["Tags"] == [{"Key": "CostCenter", "Value": "10001"}]
        vpc = template["Resources"]["AppNameprodVpc"]["Properties"]
        assert {"Key": "CostCenter", "Value": "10001"} in vpc["Tags"]

    def test_deterministic(
        self, three_services: list[ServiceSpec], domain: DomainProperties
    ) -> None:
        assert _build(three_services, domain) == _build(list(three_services), domain)


@pytest.mark.unit
class TestStackTemplateBuilderErrors:
    """Tests for inputs the builder rejects."""

    def test_colliding_logical_ids(self, domain: DomainProperties) -> None:
        services = [
            ServiceSpec(
                id="web-1",
                image=ContainerImage.from_registry("nginx"),
                container_port=80,
                conditions=(RoutingCondition.path_patterns("/a*"),),
            ),
            ServiceSpec(
                id="web1",
                image=ContainerImage.from_registry("nginx"),
                container_port=80,
            ),
        ]

        with pytest.raises(ConfigurationError, match="same resource name 'web1'"):
            StackTemplateBuilder(STACK, services, build_plan(services), domain)

    def test_plan_targets_undeclared_service(
        self, default_service: ServiceSpec, domain: DomainProperties
    ) -> None:
        plan = RoutingPlan(default_action=ForwardAction(target_id="ghost", target_port=80))

        with pytest.raises(ConfigurationError, match="undeclared service"):
            StackTemplateBuilder(STACK, [default_service], plan, domain)

    def test_stack_name_without_alphanumerics(
        self, default_service: ServiceSpec, domain: DomainProperties
    ) -> None:
        with pytest.raises(ConfigurationError, match="stack name"):
            StackTemplateBuilder("--", [default_service], build_plan([default_service]), domain)
