# modloader/core/jsonutils.py
from __future__ import annotations

import json
import math
import traceback
from collections import deque
from collections.abc import Iterable, Mapping
from dataclasses import fields, is_dataclass
from enum import Enum
from pathlib import PurePath
from typing import Any

from pydantic import BaseModel

__all__ = ["safeJsonDumps", "serializeError", "toJsonSafe"]

TRACEBACK_CHAR_LIMIT = 4000
# Asset and library payloads are summarized, never inlined into log records.
BYTES_PREVIEW_LIMIT = 16



def safeJsonDumps(obj: object) -> str:
    """
    Serializes an object to a compact JSON string (separators "," and ":").
    Anything json cannot encode directly goes through toJsonSafe first.
    """
    try:
        return json.dumps(obj, ensure_ascii=False, allow_nan=False, separators=(",", ":"))
    except (TypeError, ValueError):
        return json.dumps(toJsonSafe(obj), ensure_ascii=False, allow_nan=False, separators=(",", ":"))



def serializeError(err: Any, *, limit: int = TRACEBACK_CHAR_LIMIT) -> dict[str, Any]:
    """
    Converts an exception into a JSON-safe dict:

        SourceUnreadableError("Bad.zip", ...) -> {"type": "SourceUnreadableError",
                                                  "message": "...",
                                                  "kind": "sourceUnreadable",
                                                  "identity": "Bad.zip",
                                                  "stack": "..."}

    Strings become {"message": ...}, None becomes {}. The stack keeps the
    innermost frames when it is longer than `limit` characters.
    """
    if err is None:
        return {}
    if isinstance(err, str):
        return {"message": err}
    if not isinstance(err, BaseException):
        return {"type": type(err).__name__, "repr": repr(err)}

    data: dict[str, Any] = {"type": type(err).__name__, "message": str(err)}
    kind = getattr(err, "kind", None)
    if isinstance(kind, Enum):
        data["kind"] = kind.value
    identity = getattr(err, "identity", None)
    if isinstance(identity, str):
        data["identity"] = identity

    if err.__traceback__ is not None:
        frames: deque[str] = deque(traceback.format_tb(err.__traceback__))
        total = sum(len(frame) for frame in frames)
        truncated = False
        while frames and total > limit:
            total -= len(frames.popleft())
            truncated = True
        data["stack"] = "".join(frames) + ("[TRUNCATED]" if truncated else "")
    return data



def _summarizeBytes(data: bytes | bytearray | memoryview) -> dict[str, Any]:
    raw = bytes(data)
    return {"bytes": len(raw), "preview": raw[:BYTES_PREVIEW_LIMIT].hex()}



def toJsonSafe(obj: Any, *, maxDepth: int | None = 10, _seen: set[int] | None = None, _depth: int = 0) -> Any:
    """
    Returns a structure json.dumps accepts, for use in log records.

    Enums become their value, paths POSIX strings, pydantic models and
    dataclasses dicts of their fields, bytes a {"bytes", "preview"} summary,
    exceptions serializeError(). Non-finite floats and unknown objects fall
    back to repr(). Cycles and nesting deeper than `maxDepth` are replaced by
    a marker string.
    """
    if obj is None or isinstance(obj, (bool, int, str)):
        return obj
    if isinstance(obj, float):
        return obj if math.isfinite(obj) else repr(obj)

    seen = _seen if _seen is not None else set()
    if id(obj) in seen:
        return f"<circular_ref {type(obj).__name__}>"
    if maxDepth is not None and _depth > maxDepth:
        return f"<max_depth_exceeded {type(obj).__name__}>"

    def nested(value: Any) -> Any:
        return toJsonSafe(value, maxDepth=maxDepth, _seen=seen, _depth=_depth + 1)

    if isinstance(obj, Enum):
        return nested(obj.value)
    if isinstance(obj, PurePath):
        return obj.as_posix()
    if isinstance(obj, (bytes, bytearray, memoryview)):
        return _summarizeBytes(obj)
    if isinstance(obj, BaseException):
        return serializeError(obj)
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")

    seen.add(id(obj))
    try:
        if is_dataclass(obj) and not isinstance(obj, type):
            return {field.name: nested(getattr(obj, field.name)) for field in fields(obj)}
        if isinstance(obj, Mapping):
            return {str(key): nested(value) for key, value in obj.items()}
        if isinstance(obj, Iterable):
            return [nested(value) for value in obj]
    finally:
        seen.discard(id(obj))
    return repr(obj)
