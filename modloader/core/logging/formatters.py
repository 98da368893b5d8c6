# modloader/core/logging/formatters.py
from __future__ import annotations

import logging

from modloader.core.jsonutils import safeJsonDumps, serializeError
from .context import getLogContext

__all__ = ["JsonFormatter", "DevFormatter"]



class JsonFormatter(logging.Formatter):
    """One-line JSON records for files and machine consumers."""
    def format(self, record: logging.LogRecord) -> str:
        base = {
            "ts": int(record.created * 1000),
            "level": record.levelname.lower(),
            "logger": record.name,
            "msg": record.getMessage(),
            "ctx": getLogContext() or {},
        }

        if record.exc_info and record.exc_info[1] is not None:
            # Full traceback text instead of the frames-only stack
            exc = serializeError(record.exc_info[1])
            exc["stack"] = self.formatException(record.exc_info)
            base["exc"] = exc

        return safeJsonDumps(base)



class DevFormatter(logging.Formatter):
    """Human-friendly console formatter."""
    def format(self, record: logging.LogRecord) -> str:
        ctx = getLogContext()
        ctxStr = ""
        if ctx:
            md = []
            modId = ctx.get("modId")
            identity = ctx.get("identity")
            phase = ctx.get("phase")
            if modId:
                md.append(str(modId))
            if identity and identity != modId:
                md.append(str(identity))
            if phase:
                md.append(str(phase))
            if md:
                ctxStr = " [" + "/".join(md) + "]"
        msg = record.getMessage()
        if record.exc_info:
            msg += "\n" + self.formatException(record.exc_info)
        if record.stack_info:
            msg += "\n" + str(record.stack_info)
        return f"{record.levelname}: [{record.name}] {msg}{ctxStr}"
