"""Web application topology.

A VPC with public and private subnets; a Windows web server in a private
subnet behind an internet-facing application load balancer; a versioned
artifact bucket the server can read and write; a DNS alias record for the
site; and a monitoring dashboard with CPU and memory graphs.

Every environment-specific value comes from ``[webapp]`` in stackctl.toml.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from stackctl.domain.references import ref

if TYPE_CHECKING:
    from stackctl.config.settings import StackSettings
    from stackctl.domain.graph import ResourceGraph

ANYWHERE = "0.0.0.0/0"


def build(graph: ResourceGraph, settings: StackSettings) -> None:
    """Declare the web application resources on *graph*."""
    cfg = settings.webapp
    prefix = cfg.name_prefix

    graph.declare(
        "vpc",
        "vpc",
        {
            "name": f"{prefix}-vpc",
            "cidr": cfg.vpc_cidr,
            "max_azs": cfg.max_azs,
            "nat_gateways": cfg.nat_gateways,
        },
    )

    graph.declare(
        "alb_sg",
        "security_group",
        {
            "vpc_id": ref("vpc"),
            "description": "Security group for the load balancer",
            "allow_all_outbound": True,
            "ingress": [
                {"peer": ANYWHERE, "port": cfg.http_port, "description": "Allow HTTP traffic"},
            ],
        },
    )

    graph.declare(
        "web_sg",
        "security_group",
        {
            "vpc_id": ref("vpc"),
            "description": "Security group for web server",
            "allow_all_outbound": True,
            "ingress": [
                {"peer": ANYWHERE, "port": cfg.http_port, "description": "Allow HTTP traffic"},
                {"peer": ANYWHERE, "port": cfg.https_port, "description": "Allow HTTPS traffic"},
                {
                    "peer": cfg.management_cidr,
                    "port": cfg.rdp_port,
                    "description": "Allow RDP from management network",
                },
                {
                    "peer": ref("alb_sg"),
                    "port": cfg.http_port,
                    "description": "Allow traffic from ALB",
                },
            ],
        },
    )

    graph.declare(
        "web_role",
        "iam_role",
        {
            "name": f"{prefix}-web-role",
            "assumed_by": "ec2.amazonaws.com",
            "managed_policies": list(cfg.managed_policies),
        },
    )

    graph.declare(
        "deploy_bucket",
        "bucket",
        {
            "name_prefix": f"{prefix}-deploy",
            "encryption": "s3-managed",
            "block_public_access": True,
            "versioned": True,
            "removal_policy": "retain",
        },
    )

    graph.declare(
        "deploy_bucket_grant",
        "bucket_grant",
        {
            "bucket": ref("deploy_bucket", "arn"),
            "principal": ref("web_role", "arn"),
            "actions": ["read", "write"],
        },
    )

    graph.declare(
        "web_server",
        "instance",
        {
            "instance_type": cfg.instance_type,
            "machine_image": cfg.machine_image,
            "key_name": cfg.key_name,
            "subnet_ids": ref("vpc", "private_subnet_ids"),
            "security_groups": [ref("web_sg")],
            "role": ref("web_role", "arn"),
            "user_data": list(cfg.user_data),
        },
        depends_on=["deploy_bucket_grant"],
    )

    graph.declare(
        "alb",
        "load_balancer",
        {
            "name": f"{prefix}-alb",
            "vpc_id": ref("vpc"),
            "internet_facing": True,
            "subnets": ref("vpc", "public_subnet_ids"),
            "security_groups": [ref("alb_sg")],
        },
    )

    graph.declare(
        "web_targets",
        "target_group",
        {
            "vpc_id": ref("vpc"),
            "port": cfg.http_port,
            "targets": [ref("web_server", "instance_id")],
            "health_check": {
                "path": cfg.health_check_path,
                "interval_seconds": cfg.health_check_interval,
                "timeout_seconds": cfg.health_check_timeout,
                "healthy_http_codes": cfg.healthy_http_codes,
            },
        },
    )

    graph.declare(
        "http_listener",
        "listener",
        {
            "load_balancer_arn": ref("alb", "arn"),
            "port": cfg.http_port,
            "open": True,
            "default_target_group": ref("web_targets", "arn"),
        },
    )

    graph.declare(
        "dns_record",
        "dns_record",
        {
            "zone": cfg.domain_name,
            "record_name": cfg.record_name,
            "record_type": "A",
            "alias_target": ref("alb", "dns_name"),
        },
    )

    graph.declare(
        "dashboard",
        "dashboard",
        {
            "dashboard_name": cfg.dashboard_name,
            "widgets": [
                {
                    "title": "CPU Utilization",
                    "namespace": "AWS/EC2",
                    "metric": "CPUUtilization",
                    "dimensions": {"InstanceId": ref("web_server", "instance_id")},
                },
                {
                    "title": "Memory Utilization",
                    "namespace": "CWAgent",
                    "metric": "Memory % Committed Bytes In Use",
                    "dimensions": {"InstanceId": ref("web_server", "instance_id")},
                    "statistic": "Average",
                    "period_seconds": 60,
                },
            ],
        },
    )

    graph.output(
        "load_balancer_dns",
        ref("alb", "dns_name"),
        "The DNS name of the load balancer",
    )
    graph.output("website_url", f"http://{cfg.fqdn}", "The URL of the website")
    graph.output(
        "deployment_bucket_name",
        ref("deploy_bucket", "bucket_name"),
        "The name of the bucket for deployment artifacts",
    )
