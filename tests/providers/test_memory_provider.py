"""Tests for the in-memory provider and the simulated cloud."""

from __future__ import annotations

from pathlib import Path

import pytest

from stackctl.domain.errors import ProviderError
from stackctl.providers.memory import InMemoryProvider, TypeSpec
from stackctl.providers.simulated import SIMULATED_TYPES, simulated_provider


class TestCrud:
    def test_create_assigns_prefixed_id(self, provider: InMemoryProvider) -> None:
        result = provider.create("instance", {"port": 80}, logical_id="X")
        assert result.provider_id.startswith("i-")
        assert result.outputs["id"] == result.provider_id
        assert result.outputs["private_ip"] == "10.0.0.5"
        assert provider.calls == [("create", "X")]

    def test_read(self, provider: InMemoryProvider) -> None:
        created = provider.create("record", {"name": "a"}, logical_id="r")
        found = provider.read("record", created.provider_id)
        assert found is not None
        assert found.provider_id == created.provider_id
        assert provider.read("record", "rec-missing") is None
        assert provider.read("instance", created.provider_id) is None

    def test_update_in_place(self, provider: InMemoryProvider) -> None:
        created = provider.create("instance", {"port": 80, "size": "s"}, logical_id="X")
        updated = provider.update(
            "instance",
            created.provider_id,
            {"port": 80, "size": "s"},
            {"port": 80, "size": "l"},
            logical_id="X",
        )
        assert updated.provider_id == created.provider_id
        assert provider.objects("instance")[created.provider_id]["attributes"]["size"] == "l"

    def test_update_refuses_replacement_attribute(self, provider: InMemoryProvider) -> None:
        created = provider.create("instance", {"port": 80}, logical_id="X")
        with pytest.raises(ProviderError, match="port"):
            provider.update(
                "instance", created.provider_id, {"port": 80}, {"port": 443}, logical_id="X"
            )

    def test_update_missing_resource_fails(self, provider: InMemoryProvider) -> None:
        with pytest.raises(ProviderError, match="does not exist"):
            provider.update("record", "rec-gone", {}, {"a": 1}, logical_id="r")

    def test_delete_is_idempotent(self, provider: InMemoryProvider) -> None:
        created = provider.create("record", {}, logical_id="r")
        provider.delete("record", created.provider_id, logical_id="r")
        provider.delete("record", created.provider_id, logical_id="r")
        assert provider.objects() == {}

    def test_unsupported_type(self, provider: InMemoryProvider) -> None:
        with pytest.raises(ProviderError, match="unsupported"):
            provider.create("database", {}, logical_id="db")

    def test_replace_on(self, provider: InMemoryProvider) -> None:
        assert provider.replace_on("instance") == frozenset({"port", "image"})
        assert provider.supports("record")
        assert not provider.supports("database")


class TestFailureInjection:
    def test_fails_matching_calls_only(self, provider: InMemoryProvider) -> None:
        provider.inject_failure("create", logical_id="bad", message="quota exceeded")
        provider.create("record", {}, logical_id="good")
        with pytest.raises(ProviderError, match="quota exceeded") as exc_info:
            provider.create("record", {}, logical_id="bad")
        assert not exc_info.value.retryable

    def test_failure_limited_by_times(self, provider: InMemoryProvider) -> None:
        provider.inject_failure("create", resource_type="record", times=1, retryable=True)
        with pytest.raises(ProviderError):
            provider.create("record", {}, logical_id="r")
        provider.create("record", {}, logical_id="r")
        assert len(provider.objects("record")) == 1


class TestPersistence:
    def test_objects_mirrored_to_json(self, tmp_path: Path) -> None:
        path = tmp_path / "cloud.json"
        first = InMemoryProvider({"record": TypeSpec("rec")}, path=path)
        created = first.create("record", {"name": "a"}, logical_id="r")
        assert path.is_file()

        second = InMemoryProvider({"record": TypeSpec("rec")}, path=path)
        assert second.read("record", created.provider_id) is not None


class TestSimulatedTypes:
    def test_covers_webapp_types(self) -> None:
        provider = simulated_provider()
        assert provider.resource_types == frozenset(SIMULATED_TYPES)
        assert "instance" in provider.resource_types

    def test_vpc_reports_subnets(self) -> None:
        provider = simulated_provider()
        result = provider.create("vpc", {"cidr": "10.0.0.0/16", "max_azs": 3}, logical_id="vpc")
        assert len(result.outputs["private_subnet_ids"]) == 3
        assert len(result.outputs["public_subnet_ids"]) == 3

    def test_load_balancer_reports_dns_name(self) -> None:
        provider = simulated_provider()
        result = provider.create("load_balancer", {"internet_facing": True}, logical_id="alb")
        assert result.outputs["dns_name"].endswith(".elb.sim.internal")
        assert result.outputs["arn"].startswith("arn:sim:elasticloadbalancing")
