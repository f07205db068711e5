"""Simulated resource types for the in-memory provider.

Each type declares its id prefix, the attributes that force replacement,
and the extra outputs a real cloud would report (ARNs, DNS names).
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

from stackctl.providers.memory import InMemoryProvider, OutputFn, TypeSpec


def _arn(service: str) -> OutputFn:
    def outputs(provider_id: str, _attributes: Mapping[str, Any]) -> dict[str, Any]:
        return {"arn": f"arn:sim:{service}:::{provider_id}"}

    return outputs


def _vpc_outputs(provider_id: str, attributes: Mapping[str, Any]) -> dict[str, Any]:
    azs = int(attributes.get("max_azs", 1))
    suffix = provider_id.split("-", 1)[-1][:6]
    return {
        "public_subnet_ids": [f"subnet-pub{i}{suffix}" for i in range(azs)],
        "private_subnet_ids": [f"subnet-prv{i}{suffix}" for i in range(azs)],
    }


def _bucket_outputs(provider_id: str, attributes: Mapping[str, Any]) -> dict[str, Any]:
    prefix = attributes.get("name_prefix", "bucket")
    return {
        "bucket_name": f"{prefix}-{provider_id.split('-', 1)[-1]}",
        "arn": f"arn:sim:s3:::{provider_id}",
    }


def _instance_outputs(provider_id: str, _attributes: Mapping[str, Any]) -> dict[str, Any]:
    return {"instance_id": provider_id, "private_ip": "10.0.128.10"}


def _alb_outputs(provider_id: str, _attributes: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "arn": f"arn:sim:elasticloadbalancing:::{provider_id}",
        "dns_name": f"{provider_id}.elb.sim.internal",
    }


def _record_outputs(_provider_id: str, attributes: Mapping[str, Any]) -> dict[str, Any]:
    return {"fqdn": f"{attributes.get('record_name')}.{attributes.get('zone')}"}


SIMULATED_TYPES: dict[str, TypeSpec] = {
    "vpc": TypeSpec("vpc", frozenset({"cidr"}), _vpc_outputs),
    "security_group": TypeSpec("sg", frozenset({"vpc_id", "description"})),
    "iam_role": TypeSpec("role", frozenset({"assumed_by"}), _arn("iam")),
    "bucket": TypeSpec("bucket", frozenset({"encryption", "name_prefix"}), _bucket_outputs),
    "bucket_grant": TypeSpec("grant", frozenset({"bucket", "principal"})),
    "instance": TypeSpec(
        "i",
        frozenset({"machine_image", "subnet_ids", "key_name", "instance_type"}),
        _instance_outputs,
    ),
    "load_balancer": TypeSpec("alb", frozenset({"internet_facing", "vpc_id"}), _alb_outputs),
    "listener": TypeSpec("listener", frozenset({"load_balancer_arn"}), _arn("listener")),
    "target_group": TypeSpec("tg", frozenset({"port", "vpc_id"}), _arn("targetgroup")),
    "dns_record": TypeSpec("rec", frozenset({"zone", "record_name"}), _record_outputs),
    "dashboard": TypeSpec("dash", frozenset({"dashboard_name"})),
}


def simulated_provider(path: Path | None = None) -> InMemoryProvider:
    """An in-memory provider that knows every simulated type."""
    return InMemoryProvider(SIMULATED_TYPES, path=path)
