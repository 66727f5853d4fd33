"""CloudFormation template synthesis for a Fargate stack.

This module translates service declarations and their routing plan into
a CloudFormation template: network, cluster, one Fargate service per
declaration, the application load balancer with its HTTPS and redirect
listeners, and the DNS record of the public endpoint. The translation
is deterministic; resource logical ids derive from the stack name and
the service ids.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any

import structlog

from fargate_stack.integrations.aws.exceptions import ConfigurationError
from fargate_stack.integrations.aws.models.base import Tag
from fargate_stack.integrations.aws.models.domain import DomainProperties, NetworkConfig
from fargate_stack.integrations.aws.models.routing import (
    FixedResponseAction,
    ListenerAction,
    RoutingPlan,
)
from fargate_stack.integrations.aws.models.service import RoutingCondition, ServiceSpec

logger = structlog.get_logger()

TEMPLATE_FORMAT_VERSION = "2010-09-09"
EXECUTION_ROLE_POLICY = "arn:aws:iam::aws:policy/service-role/AmazonECSTaskExecutionRolePolicy"
TASK_ROLE_POLICY = "arn:aws:iam::aws:policy/AmazonSSMReadOnlyAccess"
LOG_RETENTION_DAYS = 30
DNS_RECORD_TTL = "300"

_CONDITION_CONFIG_KEYS = {
    "path-pattern": "PathPatternConfig",
    "host-header": "HostHeaderConfig",
}
_NON_ALPHANUMERIC = re.compile(r"[^A-Za-z0-9]")


def logical_id(*parts: str) -> str:
    """Join parts into a CloudFormation logical id (alphanumerics only)."""
    return "".join(_NON_ALPHANUMERIC.sub("", part) for part in parts)


def ref(name: str) -> dict[str, str]:
    return {"Ref": name}


def get_att(name: str, attribute: str) -> dict[str, list[str]]:
    return {"Fn::GetAtt": [name, attribute]}


def condition_to_cfn(condition: RoutingCondition) -> dict[str, Any]:
    """Render a routing condition as a listener rule condition."""
    return {
        "Field": condition.field,
        _CONDITION_CONFIG_KEYS[condition.field]: {"Values": list(condition.values)},
    }


def _assume_role_policy(service: str) -> dict[str, Any]:
    return {
        "Version": "2012-10-17",
        "Statement": [
            {
                "Effect": "Allow",
                "Principal": {"Service": service},
                "Action": "sts:AssumeRole",
            }
        ],
    }


class StackTemplateBuilder:
    """Synthesizes the CloudFormation template for one stack.

    Example:
        >>> plan = build_plan(services)
        >>> template = StackTemplateBuilder("AppName-dev", services, plan, domain).build()
        >>> template["Resources"]["AppNamedevHttpsListener"]["Properties"]["Port"]
        443
    """

    def __init__(
        self,
        stack_name: str,
        services: Sequence[ServiceSpec],
        plan: RoutingPlan,
        domain: DomainProperties,
        tags: Sequence[Tag] = (),
        network: NetworkConfig | None = None,
    ) -> None:
        """Initialize the builder.

        Args:
            stack_name: Stack name; prefixes stack-wide logical ids.
            services: Service declarations the plan was built from.
            plan: Routing plan for the services.
            domain: Domain, record and certificate of the endpoint.
            tags: Tags applied to the VPC, load balancer, tasks and services.
            network: Existing network to use; a VPC is created when omitted.

        Raises:
            ConfigurationError: If service ids collide once reduced to
                logical ids, or the plan targets an undeclared service.
        """
        self.stack_name = stack_name
        self.services = list(services)
        self.plan = plan
        self.domain = domain
        self.tags = list(tags)
        self.network = network or NetworkConfig()
        self.prefix = logical_id(stack_name)
        if not self.prefix:
            raise ConfigurationError("stack name must contain alphanumeric characters")
        self._service_ids = self._map_service_ids()
        self._check_plan_targets()
        self._log = logger.bind(stack=stack_name)

    def _map_service_ids(self) -> dict[str, str]:
        mapping: dict[str, str] = {}
        owners: dict[str, str] = {}
        for service in self.services:
            sid = logical_id(service.id)
            if not sid:
                raise ConfigurationError(
                    "service id must contain alphanumeric characters",
                    service_id=service.id,
                    field="id",
                )
            if sid in owners:
                raise ConfigurationError(
                    f"service ids '{owners[sid]}' and '{service.id}' map to the same "
                    f"resource name '{sid}'",
                    service_id=service.id,
                    field="id",
                )
            owners[sid] = service.id
            mapping[service.id] = sid
        return mapping

    def _check_plan_targets(self) -> None:
        targets = [rule.target_id for rule in self.plan.rules]
        if self.plan.default_target is not None:
            targets.append(self.plan.default_target)
        for target in targets:
            if target not in self._service_ids:
                raise ConfigurationError(
                    "routing plan targets an undeclared service", service_id=target
                )

    # =========================================================================
    # Logical ids
    # =========================================================================

    def _id(self, suffix: str) -> str:
        return f"{self.prefix}{suffix}"

    def _sid(self, service: ServiceSpec | str, suffix: str) -> str:
        service_id = service if isinstance(service, str) else service.id
        return f"{self._service_ids[service_id]}{suffix}"

    @property
    def load_balancer_id(self) -> str:
        return self._id("LoadBalancer")

    @property
    def https_listener_id(self) -> str:
        return self._id("HttpsListener")

    def image_parameter_name(self, service: ServiceSpec) -> str:
        """Template parameter that receives an asset image's pushed URI."""
        return self._sid(service, "ImageUri")

    @property
    def image_parameters(self) -> dict[str, str]:
        """Map of asset-image service id to its template parameter name."""
        return {
            service.id: self.image_parameter_name(service)
            for service in self.services
            if service.image.is_asset
        }

    # =========================================================================
    # Network
    # =========================================================================

    def _vpc_ref(self) -> Any:
        if self.network.creates_vpc:
            return ref(self._id("Vpc"))
        return self.network.vpc_id

    def _subnet_refs(self) -> list[Any]:
        if self.network.creates_vpc:
            return [
                ref(self._id(f"PublicSubnet{index + 1}")) for index in range(self.network.max_azs)
            ]
        return list(self.network.subnet_ids)

    def _network_resources(self) -> dict[str, Any]:
        """VPC with one public subnet per availability zone."""
        if not self.network.creates_vpc:
            return {}

        vpc = self._id("Vpc")
        gateway = self._id("InternetGateway")
        attachment = self._id("GatewayAttachment")
        route_table = self._id("PublicRouteTable")
        resources: dict[str, Any] = {
            vpc: {
                "Type": "AWS::EC2::VPC",
                "Properties": {
                    "CidrBlock": self.network.cidr_block,
                    "EnableDnsHostnames": True,
                    "EnableDnsSupport": True,
                    "Tags": self._tags(Name=f"{self.stack_name}/Vpc"),
                },
            },
            gateway: {"Type": "AWS::EC2::InternetGateway"},
            attachment: {
                "Type": "AWS::EC2::VPCGatewayAttachment",
                "Properties": {"VpcId": ref(vpc), "InternetGatewayId": ref(gateway)},
            },
            route_table: {
                "Type": "AWS::EC2::RouteTable",
                "Properties": {"VpcId": ref(vpc)},
            },
            self._id("PublicDefaultRoute"): {
                "Type": "AWS::EC2::Route",
                "DependsOn": attachment,
                "Properties": {
                    "RouteTableId": ref(route_table),
                    "DestinationCidrBlock": "0.0.0.0/0",
                    "GatewayId": ref(gateway),
                },
            },
        }

        for index in range(self.network.max_azs):
            subnet = self._id(f"PublicSubnet{index + 1}")
            resources[subnet] = {
                "Type": "AWS::EC2::Subnet",
                "Properties": {
                    "VpcId": ref(vpc),
                    "AvailabilityZone": {"Fn::Select": [index, {"Fn::GetAZs": ""}]},
                    "CidrBlock": {
                        "Fn::Select": [
                            index,
                            {"Fn::Cidr": [self.network.cidr_block, self.network.max_azs, "8"]},
                        ]
                    },
                    "MapPublicIpOnLaunch": True,
                },
            }
            resources[f"{subnet}RouteTableAssociation"] = {
                "Type": "AWS::EC2::SubnetRouteTableAssociation",
                "Properties": {"SubnetId": ref(subnet), "RouteTableId": ref(route_table)},
            }
        return resources

    def _security_groups(self) -> dict[str, Any]:
        lb_group = self._id("LoadBalancerSecurityGroup")
        ports = sorted({service.container_port for service in self.services})
        return {
            lb_group: {
                "Type": "AWS::EC2::SecurityGroup",
                "Properties": {
                    "GroupDescription": f"{self.stack_name} load balancer",
                    "VpcId": self._vpc_ref(),
                    "SecurityGroupIngress": [
                        {
                            "IpProtocol": rule.protocol,
                            "FromPort": rule.port,
                            "ToPort": rule.port,
                            "CidrIp": rule.cidr,
                            "Description": rule.description,
                        }
                        for rule in self.plan.ingress_rules
                    ],
                },
            },
            self._id("ServiceSecurityGroup"): {
                "Type": "AWS::EC2::SecurityGroup",
                "Properties": {
                    "GroupDescription": f"{self.stack_name} services",
                    "VpcId": self._vpc_ref(),
                    "SecurityGroupIngress": [
                        {
                            "IpProtocol": "tcp",
                            "FromPort": port,
                            "ToPort": port,
                            "SourceSecurityGroupId": get_att(lb_group, "GroupId"),
                        }
                        for port in ports
                    ],
                },
            },
        }

    # =========================================================================
    # Services
    # =========================================================================

    def _tags(self, **extra: str) -> list[dict[str, str]]:
        tags = [tag.to_cfn() for tag in self.tags]
        tags.extend({"Key": key, "Value": value} for key, value in extra.items())
        return tags

    def _image(self, service: ServiceSpec) -> Any:
        if service.image.is_asset:
            return ref(self.image_parameter_name(service))
        return service.image.reference

    def _container_definition(self, service: ServiceSpec) -> dict[str, Any]:
        return {
            "Name": self._sid(service, "Container"),
            "Image": self._image(service),
            "Memory": service.memory_limit_mib,
            "Essential": True,
            "PortMappings": [{"ContainerPort": service.container_port, "Protocol": "tcp"}],
            "Environment": [
                {"Name": name, "Value": value}
                for name, value in sorted(service.environment.items())
            ],
            "LogConfiguration": {
                "LogDriver": "awslogs",
                "Options": {
                    "awslogs-group": ref(self._sid(service, "Logs")),
                    "awslogs-region": ref("AWS::Region"),
                    "awslogs-stream-prefix": service.id,
                },
            },
        }

    def _service_resources(self, service: ServiceSpec) -> dict[str, Any]:
        """Log group, task role, task definition, target group and Fargate service."""
        logs = self._sid(service, "Logs")
        task_role = self._sid(service, "TaskRole")
        task_definition = self._sid(service, "TaskDefinition")
        target_group = self._sid(service, "TargetGroup")

        depends_on = [self.https_listener_id]
        if self.plan.rule_for(service.id) is not None:
            depends_on.append(self._sid(service, "ListenerRule"))

        return {
            logs: {
                "Type": "AWS::Logs::LogGroup",
                "Properties": {"RetentionInDays": LOG_RETENTION_DAYS},
            },
            task_role: {
                "Type": "AWS::IAM::Role",
                "Properties": {
                    "AssumeRolePolicyDocument": _assume_role_policy("ecs-tasks.amazonaws.com"),
                    "ManagedPolicyArns": [TASK_ROLE_POLICY],
                },
            },
            task_definition: {
                "Type": "AWS::ECS::TaskDefinition",
                "Properties": {
                    "Family": logical_id(self.stack_name, service.id),
                    "RequiresCompatibilities": ["FARGATE"],
                    "NetworkMode": "awsvpc",
                    "Cpu": str(service.cpu),
                    "Memory": str(service.task_memory_mib),
                    "ExecutionRoleArn": get_att(self._id("TaskExecutionRole"), "Arn"),
                    "TaskRoleArn": get_att(task_role, "Arn"),
                    "ContainerDefinitions": [self._container_definition(service)],
                    "Tags": self._tags(),
                },
            },
            target_group: {
                "Type": "AWS::ElasticLoadBalancingV2::TargetGroup",
                "Properties": {
                    "Port": service.container_port,
                    "Protocol": "HTTP",
                    "TargetType": "ip",
                    "VpcId": self._vpc_ref(),
                },
            },
            self._sid(service, "FargateService"): {
                "Type": "AWS::ECS::Service",
                "DependsOn": depends_on,
                "Properties": {
                    "Cluster": ref(self._id("Cluster")),
                    "LaunchType": "FARGATE",
                    "DesiredCount": service.desired_count,
                    "TaskDefinition": ref(task_definition),
                    "NetworkConfiguration": {
                        "AwsvpcConfiguration": {
                            "AssignPublicIp": "ENABLED",
                            "SecurityGroups": [
                                get_att(self._id("ServiceSecurityGroup"), "GroupId")
                            ],
                            "Subnets": self._subnet_refs(),
                        }
                    },
                    "LoadBalancers": [
                        {
                            "ContainerName": self._sid(service, "Container"),
                            "ContainerPort": service.container_port,
                            "TargetGroupArn": ref(target_group),
                        }
                    ],
                    "PropagateTags": "SERVICE",
                    "Tags": self._tags(),
                },
            },
        }

    # =========================================================================
    # Load balancer
    # =========================================================================

    def _action(self, action: ListenerAction) -> dict[str, Any]:
        if isinstance(action, FixedResponseAction):
            return {
                "Type": "fixed-response",
                "FixedResponseConfig": {
                    "StatusCode": action.status_code,
                    "ContentType": action.content_type,
                    "MessageBody": action.message_body,
                },
            }
        target_group = self._sid(action.target_id, "TargetGroup")
        return {"Type": "forward", "TargetGroupArn": ref(target_group)}

    def _load_balancer_resources(self) -> dict[str, Any]:
        load_balancer: dict[str, Any] = {
            "Type": "AWS::ElasticLoadBalancingV2::LoadBalancer",
            "Properties": {
                "Type": "application",
                "Scheme": "internet-facing",
                "Subnets": self._subnet_refs(),
                "SecurityGroups": [get_att(self._id("LoadBalancerSecurityGroup"), "GroupId")],
                "Tags": self._tags(),
            },
        }
        if self.network.creates_vpc:
            load_balancer["DependsOn"] = self._id("GatewayAttachment")

        listener = self.plan.listener
        redirect = self.plan.redirect
        resources: dict[str, Any] = {
            self.load_balancer_id: load_balancer,
            self.https_listener_id: {
                "Type": "AWS::ElasticLoadBalancingV2::Listener",
                "Properties": {
                    "LoadBalancerArn": ref(self.load_balancer_id),
                    "Port": listener.port,
                    "Protocol": listener.protocol,
                    "Certificates": [{"CertificateArn": self.domain.domain_certificate_arn}],
                    "DefaultActions": [self._action(self.plan.default_action)],
                },
            },
            self._id("HttpRedirect"): {
                "Type": "AWS::ElasticLoadBalancingV2::Listener",
                "Properties": {
                    "LoadBalancerArn": ref(self.load_balancer_id),
                    "Port": redirect.port,
                    "Protocol": redirect.protocol,
                    "DefaultActions": [
                        {
                            "Type": "redirect",
                            "RedirectConfig": {
                                "Protocol": redirect.redirect_protocol,
                                "Port": str(redirect.redirect_port),
                                "StatusCode": redirect.status_code,
                            },
                        }
                    ],
                },
            },
        }

        for rule in self.plan.rules:
            resources[self._sid(rule.target_id, "ListenerRule")] = {
                "Type": "AWS::ElasticLoadBalancingV2::ListenerRule",
                "Properties": {
                    "ListenerArn": ref(self.https_listener_id),
                    "Priority": rule.priority,
                    "Conditions": [condition_to_cfn(c) for c in rule.conditions],
                    "Actions": [self._action(rule.action)],
                },
            }
        return resources

    def _dns_resources(self) -> dict[str, Any]:
        return {
            self._id("Site"): {
                "Type": "AWS::Route53::RecordSet",
                "Properties": {
                    "HostedZoneName": self.domain.hosted_zone_name,
                    "Name": f"{self.domain.fqdn}.",
                    "Type": "CNAME",
                    "TTL": DNS_RECORD_TTL,
                    "ResourceRecords": [get_att(self.load_balancer_id, "DNSName")],
                },
            }
        }

    # =========================================================================
    # Template
    # =========================================================================

    def build(self) -> dict[str, Any]:
        """Synthesize the complete template.

        Returns:
            JSON-serializable CloudFormation template.
        """
        resources: dict[str, Any] = {}
        resources.update(self._network_resources())
        resources.update(self._security_groups())
        resources[self._id("Cluster")] = {"Type": "AWS::ECS::Cluster"}
        resources[self._id("TaskExecutionRole")] = {
            "Type": "AWS::IAM::Role",
            "Properties": {
                "AssumeRolePolicyDocument": _assume_role_policy("ecs-tasks.amazonaws.com"),
                "ManagedPolicyArns": [EXECUTION_ROLE_POLICY],
            },
        }
        for service in self.services:
            resources.update(self._service_resources(service))
        resources.update(self._load_balancer_resources())
        resources.update(self._dns_resources())

        template: dict[str, Any] = {
            "AWSTemplateFormatVersion": TEMPLATE_FORMAT_VERSION,
            "Description": f"Fargate services behind {self.domain.fqdn}",
        }
        if self.image_parameters:
            template["Parameters"] = {
                name: {"Type": "String", "Description": f"Pushed image URI for {service_id}"}
                for service_id, name in self.image_parameters.items()
            }
        template["Resources"] = resources
        template["Outputs"] = {
            self._id("DNS"): {"Value": get_att(self.load_balancer_id, "DNSName")},
            self._id("Url"): {"Value": f"https://{self.domain.fqdn}"},
        }

        self._log.debug(
            "template_synthesized",
            resources=len(resources),
            services=len(self.services),
            rules=len(self.plan.rules),
        )
        return template
