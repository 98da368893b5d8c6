# modloader/core/errors.py
from __future__ import annotations
from enum import Enum

__all__ = [
    "LoadFailureKind",
    "ModLoaderError",
    "ModLoadError",
    "MetadataInvalidError",
    "SourceNotFoundError",
    "SourceUnreadableError",
    "EmptyBundleError",
    "DuplicateModError",
    "LibraryLoadError",
    "ConfigError",
]



class LoadFailureKind(Enum):
    METADATA_INVALID = "metadataInvalid"
    SOURCE_NOT_FOUND = "sourceNotFound"
    SOURCE_UNREADABLE = "sourceUnreadable"
    EMPTY_BUNDLE = "emptyBundle"
    DUPLICATE_NAME = "duplicateName"
    ACTIVATION_FAILED = "activationFailed"



class ModLoaderError(Exception):
    """Base class for everything the mod loader raises on purpose."""
    pass



class ModLoadError(ModLoaderError):
    """
    A single candidate mod could not be loaded.

    Raised by package sources and caught by the registry, which records the
    failure for that candidate and moves on with discovery.
    """
    kind: LoadFailureKind = LoadFailureKind.METADATA_INVALID

    def __init__(self, identity: str, reason: str):
        super().__init__(f"'{identity}': {reason}")
        self.identity = identity
        self.reason = reason



class MetadataInvalidError(ModLoadError):
    kind = LoadFailureKind.METADATA_INVALID



class SourceNotFoundError(ModLoadError):
    kind = LoadFailureKind.SOURCE_NOT_FOUND



class SourceUnreadableError(ModLoadError):
    """Wraps OS / archive errors so raw I/O failures never reach the user."""
    kind = LoadFailureKind.SOURCE_UNREADABLE



class EmptyBundleError(ModLoadError):
    """Metadata parsed, but the mod carries neither assets nor a library."""
    kind = LoadFailureKind.EMPTY_BUNDLE



class DuplicateModError(ModLoadError):
    kind = LoadFailureKind.DUPLICATE_NAME



class LibraryLoadError(ModLoaderError):
    """Executing a mod library or instantiating one of its components failed."""
    pass



class ConfigError(ModLoaderError):
    pass
