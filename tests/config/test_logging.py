"""Tests for structlog configuration and run context binding."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator

import pytest
import structlog

from stackctl.config.logging import bind_run_context, clear_run_context, configure_logging


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    try:
        yield
    finally:
        clear_run_context()
        root.handlers[:] = handlers
        root.setLevel(level)
        logging.getLogger("stackctl").setLevel(logging.NOTSET)


class TestConfigureLogging:
    def test_quiet_by_default(self) -> None:
        configure_logging()
        assert logging.getLogger("stackctl").level == logging.WARNING

    def test_verbose_enables_debug(self) -> None:
        configure_logging(verbose=True)
        assert logging.getLogger("stackctl").level == logging.DEBUG
        assert logging.getLogger("alembic").level == logging.WARNING

    def test_json_lines_carry_run_context(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(verbose=True, log_json=True)
        run_id = bind_run_context("prod")
        structlog.get_logger("stackctl.test").info("apply.change", resource_id="web")

        line = capsys.readouterr().err.strip().splitlines()[-1]
        payload = json.loads(line)
        assert payload["event"] == "apply.change"
        assert payload["resource_id"] == "web"
        assert payload["deployment"] == "prod"
        assert payload["run_id"] == run_id
        assert payload["level"] == "info"

    def test_stdlib_loggers_share_formatter(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(log_json=True)
        logging.getLogger("stackctl.providers").warning("throttled %s", "web")
        payload = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert payload["event"] == "throttled web"
        assert payload["logger"] == "stackctl.providers"


class TestRunContext:
    def test_bind_returns_fresh_ids(self) -> None:
        assert bind_run_context("a") != bind_run_context("a")

    def test_clear_removes_keys(self) -> None:
        bind_run_context("prod")
        clear_run_context()
        assert "run_id" not in structlog.contextvars.get_contextvars()
