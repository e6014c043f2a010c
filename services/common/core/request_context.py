"""
Per-request context shared with log records.

The trace ID and request ID are set by the HTTP middleware; the public key
is bound once the route has identified whose images are being served.
Values live in ContextVars so they follow the request into worker threads.
"""

import uuid
from contextvars import ContextVar
from typing import Optional

from .trace import TraceId

_trace_id_var: ContextVar[Optional[str]] = ContextVar("trace_id", default=None)
_request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
_public_key_var: ContextVar[Optional[str]] = ContextVar("public_key", default=None)


def get_trace_id() -> Optional[str]:
    return _trace_id_var.get()


def get_request_id() -> Optional[str]:
    return _request_id_var.get()


def get_public_key() -> Optional[str]:
    return _public_key_var.get()


def generate_request_id() -> str:
    """Generate a uuid4 request ID and bind it to the current context."""
    new_id = str(uuid.uuid4())
    _request_id_var.set(new_id)
    return new_id


def set_trace_id(trace_id_str: str) -> str:
    """
    Bind a trace ID taken from an X-Trace-Id header.

    Returns:
        The normalized trace ID

    Raises:
        ValueError: if the header does not contain a usable trace ID
    """
    trace = TraceId.parse(trace_id_str)
    _trace_id_var.set(str(trace))
    return str(trace)


def set_public_key(public_key: str) -> None:
    _public_key_var.set(public_key)


def clear_trace_id() -> None:
    """Reset every per-request value."""
    _trace_id_var.set(None)
    _request_id_var.set(None)
    _public_key_var.set(None)
