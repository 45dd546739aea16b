import contextvars
import re
import uuid
from collections.abc import Iterator
from contextlib import contextmanager

_REQUEST_FIELDS = ("request_id", "endpoint")
_SAFE_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")

_request_context: contextvars.ContextVar[dict | None] = contextvars.ContextVar("revpilot_request", default=None)


def new_request_id() -> str:
    return uuid.uuid4().hex


def accept_request_id(value: str | None) -> str:
    """Reuse a caller-supplied id only when it is short and log-safe."""
    value = (value or "").strip()
    return value if _SAFE_REQUEST_ID.match(value) else new_request_id()


@contextmanager
def request_context(**fields: str) -> Iterator[dict]:
    context = {key: value for key, value in fields.items() if value}
    token = _request_context.set(context)
    try:
        yield context
    finally:
        _request_context.reset(token)


class RequestContextFilter:
    def filter(self, record) -> bool:  # noqa: ANN001
        context = _request_context.get() or {}
        for name in _REQUEST_FIELDS:
            setattr(record, name, context.get(name, "-"))
        return True
