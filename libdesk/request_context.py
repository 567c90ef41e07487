"""Per-request endpoint label shared with the slow-query and error logs."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar


# Jobs and scripts run outside any route and keep the default label.
current_endpoint: ContextVar[str] = ContextVar('libdesk_endpoint', default='background')


@contextmanager
def endpoint_scope(label: str) -> Iterator[str]:
    token = current_endpoint.set(label)
    try:
        yield label
    finally:
        current_endpoint.reset(token)
