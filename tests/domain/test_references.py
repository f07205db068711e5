"""Tests for attribute references and the UNKNOWN marker."""

from __future__ import annotations

import pickle

from stackctl.domain.references import (
    UNKNOWN,
    Reference,
    contains_unknown,
    iter_references,
    ref,
    resolve_value,
    to_display,
)


class TestReference:
    def test_default_field_is_id(self) -> None:
        assert ref("vpc") == Reference("vpc", "id")

    def test_str_form(self) -> None:
        assert str(ref("alb", "dns_name")) == "${alb.dns_name}"

    def test_hashable(self) -> None:
        assert len({ref("a"), ref("a"), ref("a", "arn")}) == 2


class TestIterReferences:
    def test_finds_nested_references(self) -> None:
        value = {"a": ref("x"), "b": [1, {"c": ref("y", "arn")}], "d": (ref("z"),)}
        assert {r.node_id for r in iter_references(value)} == {"x", "y", "z"}

    def test_literals_have_none(self) -> None:
        assert list(iter_references({"port": 80, "tags": ["a", "b"]})) == []


class TestResolveValue:
    def test_replaces_references(self) -> None:
        values = {"x.id": "net-1", "y.arn": "arn:1"}
        resolved = resolve_value(
            {"net": ref("x"), "grants": [ref("y", "arn"), "static"]},
            lambda r: values[f"{r.node_id}.{r.field}"],
        )
        assert resolved == {"net": "net-1", "grants": ["arn:1", "static"]}

    def test_tuples_become_lists(self) -> None:
        assert resolve_value((1, 2), lambda r: None) == [1, 2]

    def test_does_not_mutate_input(self) -> None:
        original = {"a": [ref("x")]}
        resolve_value(original, lambda r: "v")
        assert original == {"a": [ref("x")]}


class TestUnknown:
    def test_singleton(self) -> None:
        assert type(UNKNOWN)() is UNKNOWN

    def test_survives_pickle(self) -> None:
        assert pickle.loads(pickle.dumps(UNKNOWN)) is UNKNOWN

    def test_contains_unknown_nested(self) -> None:
        assert contains_unknown({"a": [1, {"b": UNKNOWN}]})
        assert not contains_unknown({"a": [1, {"b": 2}]})

    def test_display(self) -> None:
        assert to_display({"a": UNKNOWN, "b": ref("x")}) == {
            "a": "(known after apply)",
            "b": "${x.id}",
        }
