# src/stepsnap/core/logging.py
"""Logging for stepsnap.

Two separate pieces live here:

- The ``Logger`` capability (``log(prefix, *parts)``) the context
  writes its debug and verbose messages to, with ``StructlogLogger`` as
  the default implementation.
- ``configure_logging``, which points structlog and stdlib logging at
  one handler via ProcessorFormatter. Applications that already
  configure logging can skip it; the CLI calls it.
"""

import logging
import sys
from typing import Any, Literal, Protocol, TextIO, runtime_checkable

import structlog
from structlog.stdlib import ProcessorFormatter

# Maps the severity token the context passes as first argument to a
# structlog method. Unknown tokens are logged at info.
_PREFIX_METHODS: dict[str, str] = {
    "debug": "debug",
    "verbose": "debug",
    "info": "info",
    "warning": "warning",
    "error": "error",
}


@runtime_checkable
class Logger(Protocol):
    """Logger capability used by the computation context.

    ``prefix`` is a severity-style token ("debug", "verbose", ...);
    ``parts`` are free-form values.
    """

    def log(self, prefix: str, *parts: Any) -> None: ...


def _render_part(part: Any) -> str:
    return part if isinstance(part, str) else repr(part)


class StructlogLogger:
    """Console-style default logger backed by structlog.

    Each call becomes one event whose message is the space-joined parts
    and whose ``level_token`` field carries the prefix. "debug" and
    "verbose" tokens are emitted at DEBUG, so when logging was set up
    with ``configure_logging`` the level must be DEBUG to see them.
    """

    def __init__(self, name: str = "stepsnap") -> None:
        self.name = name

    def log(self, prefix: str, *parts: Any) -> None:
        logger = structlog.get_logger(self.name)
        method = getattr(logger, _PREFIX_METHODS.get(prefix, "info"))
        method(" ".join(_render_part(part) for part in parts), level_token=prefix)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, StructlogLogger) and other.name == self.name

    def __hash__(self) -> int:
        return hash((StructlogLogger, self.name))


LogFormat = Literal["console", "json"]

_TIMESTAMPER = structlog.processors.TimeStamper(fmt="iso")


def _drop_formatter_bookkeeping(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    # ProcessorFormatter adds these to every record it handles
    for key in ("_record", "_from_structlog"):
        event_dict.pop(key, None)
    return event_dict


def _renderer_chain(log_format: LogFormat) -> list[Any]:
    if log_format == "json":
        return [
            _drop_formatter_bookkeeping,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    return [_drop_formatter_bookkeeping, structlog.dev.ConsoleRenderer(colors=False)]


def configure_logging(
    *,
    log_format: LogFormat = "console",
    level: str = "INFO",
    stream: TextIO | None = None,
) -> None:
    """Route structlog and stdlib logging through one handler.

    Records from ``structlog.get_logger`` and from plain
    ``logging.getLogger`` loggers share the same pre-chain and renderer,
    so recovery messages and library warnings come out in one format.
    Calling this again replaces the previous handler.

    Args:
        log_format: "console" for human-readable lines, "json" for one
            JSON object per line
        level: Root log level name (DEBUG, INFO, WARNING, ERROR)
        stream: Where to write; stderr at call time when omitted
    """
    pre_chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        _TIMESTAMPER,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
    ]

    structlog.configure(
        processors=[*pre_chain, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Reconfiguration must affect loggers that were already created
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(
        ProcessorFormatter(processors=_renderer_chain(log_format), foreign_pre_chain=pre_chain)
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level.upper())


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Module-level structlog logger (``get_logger(__name__)``)."""
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger
