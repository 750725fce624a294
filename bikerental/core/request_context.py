from __future__ import annotations

from contextvars import ContextVar, Token
import logging
from typing import Optional

_trace_id_var: ContextVar[str] = ContextVar("trace_id", default="")


def set_trace_id(trace_id: Optional[str]) -> Token[str]:
    return _trace_id_var.set(trace_id or "")


def reset_trace_id(token: Token[str]) -> None:
    _trace_id_var.reset(token)


def get_trace_id(default: Optional[str] = None) -> Optional[str]:
    value = _trace_id_var.get()
    return value if value else default


def get_trace_id_value(default: str = "no-trace") -> str:
    value = _trace_id_var.get()
    return value if value else default


class TraceIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "trace_id"):
            record.trace_id = get_trace_id_value()
        return True


def attach_trace_id_filter(logger: Optional[logging.Logger] = None) -> None:
    target = logger or logging.getLogger()
    for handler in target.handlers:
        if not any(isinstance(f, TraceIdFilter) for f in handler.filters):
            handler.addFilter(TraceIdFilter())
