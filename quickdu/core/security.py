from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

SYSTEM = "system"
ANONYMOUS = "anonymous"

_current_principal: ContextVar[str] = ContextVar("quickdu_principal", default=ANONYMOUS)


def current_principal() -> str:
    return _current_principal.get()


@contextmanager
def impersonate(principal: str = SYSTEM) -> Iterator[str]:
    """Run the enclosed block as ``principal`` and restore the caller's identity on exit."""
    token = _current_principal.set(principal)
    try:
        yield principal
    finally:
        _current_principal.reset(token)
