# modloader/core/logging/setup.py
from __future__ import annotations
import logging
import logging.handlers
from typing import TYPE_CHECKING

from .formatters import DevFormatter, JsonFormatter
from .util import setTraceEnabled

if TYPE_CHECKING:
    from modloader.app.settings import LoggingConfig

__all__ = [
    "configureLogging",
]



def configureLogging(loggingConfig: LoggingConfig) -> logging.Logger:
    """
    Initiate the global logging configuration.

    Dev:
      - Console pretty logs (DEBUG)
      - JSON file log (DEBUG), when a log file is configured

    Prod:
      - Console INFO
      - JSON file logs INFO with rotation

    `jsonConsole` switches the console to one-line JSON records.
    Returns the configured root logger.
    """
    devMode = loggingConfig.devMode
    rootLevel = logging.DEBUG if devMode else logging.INFO
    if loggingConfig.level:
        rootLevel = logging.getLevelName(loggingConfig.level.upper())

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(rootLevel)

    consoleHandler = logging.StreamHandler()
    consoleHandler.setLevel(rootLevel)
    consoleHandler.setFormatter(JsonFormatter() if loggingConfig.jsonConsole else DevFormatter())
    root.addHandler(consoleHandler)

    if loggingConfig.logFile is not None:
        fileHandler = logging.handlers.RotatingFileHandler(
            loggingConfig.logFile,
            maxBytes=loggingConfig.maxBytes,
            backupCount=loggingConfig.backupCount,
            encoding="utf-8"
        )
        fileHandler.setLevel(rootLevel)
        fileHandler.setFormatter(JsonFormatter())
        root.addHandler(fileHandler)

    setTraceEnabled(loggingConfig.traceEnabled)
    return root
