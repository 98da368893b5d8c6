# modloader/core/logging/context.py
from __future__ import annotations
import contextvars
from collections.abc import Iterator
from contextlib import contextmanager

__all__ = ["setLogContext", "clearLogContext", "getLogContext", "logContext"]

# modId / identity / phase of the mod currently being discovered or activated
_modContextVar: contextvars.ContextVar[dict[str, object] | None] = contextvars.ContextVar("modloader.logctx", default=None)



def _merged(kvs: dict[str, object]) -> dict[str, object]:
    current = dict(_modContextVar.get() or {})
    current.update({key: value for key, value in kvs.items() if value is not None})
    return current



def setLogContext(**kvs: object) -> None:
    """Merges the non-None values into the current log context."""
    _modContextVar.set(_merged(kvs))



def clearLogContext() -> None:
    _modContextVar.set(None)



def getLogContext() -> dict[str, object] | None:
    return _modContextVar.get()



@contextmanager
def logContext(**kvs: object) -> Iterator[None]:
    """
    Tags every record logged inside the block. The previous context is
    restored on exit, so blocks nest.
    """
    token = _modContextVar.set(_merged(kvs))
    try:
        yield
    finally:
        _modContextVar.reset(token)
