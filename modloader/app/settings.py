# modloader/app/settings.py
from __future__ import annotations
import logging
from pathlib import Path
from typing import Any, Literal, cast

import json5
from pydantic import BaseModel, ConfigDict, Field, JsonValue, ValidationError, field_validator

from modloader.core.errors import ConfigError
from modloader.mods.constants import (
    ARCHIVE_EXTENSION,
    ASSETS_DIRECTORY_NAME,
    HOST_LOADER_ID,
    LIBRARY_EXTENSION,
    METADATA_FILE_NAMES,
)

logger = logging.getLogger(__name__)

__all__ = [
    "LoggingConfig", "LoaderConfig", "DEFAULT_SETTINGS",
    "loadConfig", "deepMerge",
]



class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    devMode: bool = True
    level: str | None = None
    jsonConsole: bool = False
    logFile: Path | None = None
    maxBytes: int = 10 * 1024 * 1024
    backupCount: int = 5
    traceEnabled: bool = False



class LoaderConfig(BaseModel):
    """
    Everything the registry needs to know about where mods live and how they are
    laid out. Passed explicitly into ModRegistry; there is no process-wide default.
    """
    model_config = ConfigDict(extra="forbid", frozen=True)

    modsDirectory: Path
    hostVersion: str
    hostLoaderId: str = HOST_LOADER_ID
    metadataFileNames: tuple[str, ...] = METADATA_FILE_NAMES
    assetsDirectoryName: str = ASSETS_DIRECTORY_NAME
    libraryExtension: str = LIBRARY_EXTENSION
    archiveExtension: str = ARCHIVE_EXTENSION
    cycleDetection: Literal["direct", "full"] = "direct"
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("hostVersion", "hostLoaderId", "assetsDirectoryName")
    @classmethod
    def _nonEmpty(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must be a non-empty string")
        return value.strip()

    @field_validator("metadataFileNames")
    @classmethod
    def _atLeastOneName(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not value:
            raise ValueError("at least one metadata file name is required")
        return value

    @field_validator("libraryExtension", "archiveExtension")
    @classmethod
    def _dottedExtension(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith("."):
            value = "." + value
        if len(value) < 2:
            raise ValueError("extension cannot be empty")
        return value



DEFAULT_SETTINGS: dict[str, JsonValue] = {
    "hostLoaderId": HOST_LOADER_ID,
    "metadataFileNames": list(METADATA_FILE_NAMES),
    "assetsDirectoryName": ASSETS_DIRECTORY_NAME,
    "libraryExtension": LIBRARY_EXTENSION,
    "archiveExtension": ARCHIVE_EXTENSION,
    "cycleDetection": "direct",
    "logging": {"devMode": True, "jsonConsole": False, "traceEnabled": False},
}



def deepMerge(first: JsonValue, second: JsonValue) -> JsonValue:
    """
    Returns a new JsonValue where keys from `second` override/extend `first`.
    Only merges recursively when BOTH sides are JSON objects (dicts).
    For all other JSON types (lists, strings, numbers, booleans, null),
    the right-hand value `second` replaces `first`.
    """
    if isinstance(first, dict) and isinstance(second, dict):
        out: dict[str, JsonValue] = {}
        # Start with left
        for key, value in first.items():
            out[key] = cast(JsonValue, value)
        # Overlay right
        for key, value in second.items():
            if key in out:
                out[key] = deepMerge(out[key], cast(JsonValue, value))
            else:
                out[key] = cast(JsonValue, value)
        return cast(JsonValue, out)

    # If not both dicts, replace with right-hand side
    return cast(JsonValue, second)



def _readSettingsFile(path: Path) -> dict[str, Any]:
    try:
        raw = json5.loads(path.read_text(encoding="utf-8"))
    except OSError as err:
        raise ConfigError(f"Cannot read settings file '{path}': {err}") from err
    except ValueError as err:
        raise ConfigError(f"Failed to parse settings file '{path}': {err}") from err
    if not isinstance(raw, dict):
        raise ConfigError(f"Settings file '{path}' must contain an object, got {type(raw).__name__}")
    return raw



def loadConfig(path: str | Path | None = None, **overrides: Any) -> LoaderConfig:
    """
    Builds a LoaderConfig from defaults, an optional json5 settings file and
    keyword overrides (highest precedence).

    A relative `modsDirectory` read from the file is resolved against the
    file's own directory.
    """
    merged: JsonValue = dict(DEFAULT_SETTINGS)

    if path is not None:
        settingsPath = Path(path)
        fileSettings = _readSettingsFile(settingsPath)
        modsDirectory = fileSettings.get("modsDirectory")
        if isinstance(modsDirectory, str) and not Path(modsDirectory).is_absolute():
            fileSettings["modsDirectory"] = str((settingsPath.parent / modsDirectory).resolve(strict=False))
        merged = deepMerge(merged, cast(JsonValue, fileSettings))
        logger.debug("Loaded loader settings from '%s'", settingsPath)

    if overrides:
        merged = deepMerge(merged, cast(JsonValue, {key: value for key, value in overrides.items() if value is not None}))

    try:
        return LoaderConfig.model_validate(merged)
    except ValidationError as err:
        raise ConfigError(f"Invalid loader settings: {err}") from err
