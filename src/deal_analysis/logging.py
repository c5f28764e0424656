"""
Structured logging for the deal analysis service.

structlog is configured once per process: pretty console output while
developing, one JSON object per line when LOG_JSON is set. Every entry
emitted inside a logging_context() carries the analysis trace id and the
deal/user ids of the request being processed, including entries from the
background persistence task, which inherits the context at creation.
"""

import logging
import sys
import time
from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Any, Generator

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from .config import get_settings

# Request-scoped identifiers, in the order they appear in log entries
_CONTEXT_VARS: dict[str, ContextVar[str | None]] = {
    'trace_id': ContextVar('trace_id', default=None),
    'deal_id': ContextVar('deal_id', default=None),
    'user_id': ContextVar('user_id', default=None),
}


def get_trace_id() -> str | None:
    return _CONTEXT_VARS['trace_id'].get()


def get_deal_id() -> str | None:
    return _CONTEXT_VARS['deal_id'].get()


def get_user_id() -> str | None:
    return _CONTEXT_VARS['user_id'].get()


def current_log_context() -> dict[str, str]:
    """The identifiers currently in scope, unset ones omitted."""
    return {
        name: value
        for name, var in _CONTEXT_VARS.items()
        if (value := var.get()) is not None
    }


def add_request_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Processor that stamps the request identifiers onto each entry."""
    for name, value in current_log_context().items():
        event_dict.setdefault(name, value)
    return event_dict


def configure_logging(
    json_output: bool = False,
    log_level: str | None = None,
) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        json_output: Render JSON lines instead of colored console output
        log_level: Level name; defaults to the LOG_LEVEL setting
    """
    level_name = (log_level or get_settings().LOG_LEVEL).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO

    # Library loggers (httpx, sqlalchemy, uvicorn) share the same stream
    logging.basicConfig(format='%(message)s', stream=sys.stdout, level=level)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_request_context,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt='iso'),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_output:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Structured logger for a module (pass __name__)."""
    return structlog.get_logger(name)


@contextmanager
def logging_context(**identifiers: str | None) -> Generator[None, None, None]:
    """
    Scope request identifiers to a block.

    Accepts trace_id, deal_id and user_id; None leaves the enclosing value
    in place. Previous values are restored on exit, even on error.

    Usage:
        with logging_context(trace_id=analysis_id, deal_id=deal_id):
            logger.info('pipeline.started')
    """
    unknown = set(identifiers) - set(_CONTEXT_VARS)
    if unknown:
        raise TypeError(f'Unknown logging context field(s): {", ".join(sorted(unknown))}')

    tokens: list[tuple[ContextVar[str | None], Token]] = []
    for name, value in identifiers.items():
        if value is not None:
            var = _CONTEXT_VARS[name]
            tokens.append((var, var.set(value)))
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


class PipelineTimer:
    """
    Wall-clock durations of the named phases of one pipeline run.

    Usage:
        timer = PipelineTimer()
        with timer.stage('analysis'):
            ...
        timer.summary()  # {'total_ms': ..., 'stages': {'analysis': ...}}
    """

    def __init__(self):
        self.started = time.perf_counter()
        self.stages: dict[str, float] = {}

    @contextmanager
    def stage(self, name: str) -> Generator[None, None, None]:
        """Time a block; the duration is recorded even if it raises."""
        began = time.perf_counter()
        try:
            yield
        finally:
            self.record(name, (time.perf_counter() - began) * 1000)

    def record(self, name: str, duration_ms: float) -> None:
        self.stages[name] = duration_ms

    @property
    def total_ms(self) -> float:
        return (time.perf_counter() - self.started) * 1000

    def summary(self) -> dict[str, Any]:
        return {
            'total_ms': round(self.total_ms, 2),
            'stages': {name: round(ms, 2) for name, ms in self.stages.items()},
        }


# Console output until the API lifespan applies LOG_JSON / LOG_LEVEL
configure_logging(json_output=False)
