"""
Structured logging helpers shared by every generator component.
"""

import contextlib
import logging
import time
from collections.abc import Generator
from typing import Any


class StructuredLogger:
    def __init__(self, name: str, component: str | None = None):
        self.logger = logging.getLogger(name)
        self.component = component
        self.name = name

    def _split_kwargs(self, kwargs: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
        standard_logging_kwargs = {"exc_info", "stack_info", "stacklevel"}

        extracted_kwargs: dict[str, Any] = {}
        extra_kwargs: dict[str, Any] = {}

        for key, value in kwargs.items():
            if key in standard_logging_kwargs:
                extracted_kwargs[key] = value
            else:
                extra_kwargs[key] = value

        if self.component:
            extra_kwargs["component"] = self.component

        return extracted_kwargs, extra_kwargs

    def log(self, level: int, msg: str, *args: Any, **kwargs: Any) -> None:
        extracted_kwargs, extra_kwargs = self._split_kwargs(kwargs)
        self.logger.log(level, msg, *args, extra=extra_kwargs, **extracted_kwargs)

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.log(logging.ERROR, msg, *args, **kwargs)

    def exception(self, msg: str, *args: Any, **kwargs: Any) -> None:
        kwargs["exc_info"] = True
        self.log(logging.ERROR, msg, *args, **kwargs)

    def isEnabledFor(self, level: int) -> bool:  # noqa: N802 - mirrors logging.Logger
        return self.logger.isEnabledFor(level)


def get_logger(name: str, component: str | None = None) -> StructuredLogger:
    return StructuredLogger(name, component=component)


def _ensure_structured(logger: Any) -> StructuredLogger:
    if isinstance(logger, StructuredLogger):
        return logger
    if isinstance(logger, logging.Logger):
        return StructuredLogger(logger.name)
    return StructuredLogger(getattr(logger, "name", "unknown"))


@contextlib.contextmanager
def log_operation(
    operation: str, logger: Any = None, level: int = logging.INFO, **context: Any
) -> Generator[None, None, None]:
    structured = get_logger("operation") if logger is None else _ensure_structured(logger)

    start_context: dict[str, Any] = {"operation": operation}
    start_context.update(context)
    structured.log(level, f"Started {operation}", **start_context)

    start_time = time.perf_counter()
    try:
        yield
    finally:
        duration = (time.perf_counter() - start_time) * 1000
        structured.log(
            level, f"Completed {operation}", duration_ms=f"{duration:.2f}", **start_context
        )


__all__ = [
    "StructuredLogger",
    "get_logger",
    "log_operation",
]
