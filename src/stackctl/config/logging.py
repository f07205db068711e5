"""structlog setup for the CLI.

Everything goes to stderr: console lines by default, JSON lines with
``--log-json``. Stdlib loggers (alembic, pluggy, our own ``logging`` users)
share the formatter, so run context bound with :func:`bind_run_context`
shows up on their lines too.
"""

from __future__ import annotations

import logging
import sys
import uuid

import structlog
from structlog.types import Processor

_RUN_KEYS = ("deployment", "run_id")

# Third-party loggers that stay at WARNING even under -v.
_QUIET_LOGGERS = ("alembic", "tenacity")


def _pre_chain() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _stderr_handler(log_json: bool) -> logging.Handler:
    renderer: Processor = (
        structlog.processors.JSONRenderer()
        if log_json
        else structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_pre_chain(),
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )
    return handler


def configure_logging(*, verbose: bool = False, log_json: bool = False) -> None:
    """Route structlog and stdlib logging through one stderr handler.

    ``stackctl.*`` loggers log at DEBUG with *verbose*, WARNING otherwise.
    """
    structlog.configure(
        processors=[*_pre_chain(), structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    root = logging.getLogger()
    root.handlers[:] = [_stderr_handler(log_json)]
    root.setLevel(logging.WARNING)

    logging.getLogger("stackctl").setLevel(logging.DEBUG if verbose else logging.WARNING)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_run_context(deployment_id: str) -> str:
    """Tag subsequent log lines with the deployment and a new run id."""
    run_id = uuid.uuid4().hex[:8]
    structlog.contextvars.bind_contextvars(deployment=deployment_id, run_id=run_id)
    return run_id


def clear_run_context() -> None:
    structlog.contextvars.unbind_contextvars(*_RUN_KEYS)
