# modloader/mods/components.py
from __future__ import annotations
import importlib.util
import logging
import re
import sys
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from types import ModuleType
from typing import Any, Protocol

from modloader.core.errors import LibraryLoadError
from modloader.mods.constants import COMPONENTS_EXPORT, GAME_COMPONENT

logger = logging.getLogger(__name__)

__all__ = [
    "AssetInjector",
    "ComponentHost",
    "ComponentEntry",
    "libraryModuleName",
    "loadLibraryModule",
    "unloadLibraryModule",
    "discoverComponents",
]

_LIBRARY_PACKAGE = "modloader.mods.loaded"



class AssetInjector(Protocol):
    """Receives one resolved asset at a time."""

    def inject(self, path: str, data: bytes) -> None:
        ...



class ComponentHost(Protocol):
    """Lifecycle hooks of the host application for mod-provided components."""

    def addComponent(self, component: Any) -> None:
        ...

    def removeComponent(self, component: Any) -> None:
        ...

    def initialize(self, component: Any) -> None:
        ...



@dataclass(frozen=True, slots=True)
class ComponentEntry:
    """
    One exported factory of a mod library.

    A library lists these in its module-level COMPONENTS sequence:

        COMPONENTS = [
            ComponentEntry("gameComponent", MyComponent),
            ("gameComponent", makeOtherComponent),   # plain pairs work too
        ]

    Factories of the "gameComponent" capability are called with a single
    argument, the host application handle.
    """
    capability: str
    factory: Callable[[Any], Any]



def libraryModuleName(identity: str) -> str:
    safe = re.sub(r"\W", "_", identity)
    if not safe or safe[0].isdigit():
        safe = "_" + safe
    return f"{_LIBRARY_PACKAGE}.{safe}"



def loadLibraryModule(rawLibrary: bytes, *, moduleName: str, fileName: str) -> ModuleType:
    """
    Executes library source bytes into a fresh module object registered under
    `moduleName`. Raises LibraryLoadError when compiling or executing fails.
    """
    spec = importlib.util.spec_from_loader(moduleName, loader=None, origin=fileName)
    if spec is None:
        raise LibraryLoadError(f"Could not create module spec for '{fileName}'")
    module = importlib.util.module_from_spec(spec)
    module.__file__ = fileName

    sys.modules[moduleName] = module
    try:
        code = compile(rawLibrary, fileName, "exec")
        exec(code, module.__dict__)
    except Exception as err:
        sys.modules.pop(moduleName, None)
        raise LibraryLoadError(f"Failed to execute library '{fileName}': {err}") from err
    return module



def unloadLibraryModule(module: ModuleType) -> None:
    if sys.modules.get(module.__name__) is module:
        del sys.modules[module.__name__]



def _coerceEntry(entry: Any, fileName: str) -> ComponentEntry:
    if isinstance(entry, ComponentEntry):
        return entry
    if isinstance(entry, tuple) and len(entry) == 2 and isinstance(entry[0], str):
        return ComponentEntry(capability=entry[0], factory=entry[1])
    raise LibraryLoadError(f"Invalid {COMPONENTS_EXPORT} entry in '{fileName}': {entry!r}")



def discoverComponents(module: ModuleType, hostHandle: Any) -> list[Any]:
    """
    Instantiates every "gameComponent" factory the library exports, in
    declaration order. A library without COMPONENTS contributes nothing.
    """
    fileName = getattr(module, "__file__", None) or module.__name__
    exported = getattr(module, COMPONENTS_EXPORT, None)
    if exported is None:
        logger.debug("Library '%s' exports no %s", fileName, COMPONENTS_EXPORT)
        return []
    if isinstance(exported, (str, bytes)) or not isinstance(exported, Iterable):
        raise LibraryLoadError(f"{COMPONENTS_EXPORT} in '{fileName}' must be a sequence of entries")

    components: list[Any] = []
    for raw in exported:
        entry = _coerceEntry(raw, fileName)
        if entry.capability != GAME_COMPONENT:
            logger.debug("Ignoring '%s' entry in '%s'", entry.capability, fileName)
            continue
        if not callable(entry.factory):
            raise LibraryLoadError(f"Factory for '{entry.capability}' in '{fileName}' is not callable")
        try:
            components.append(entry.factory(hostHandle))
        except Exception as err:
            raise LibraryLoadError(
                f"Constructing component {getattr(entry.factory, '__name__', entry.factory)!r} from '{fileName}' failed: {err}"
            ) from err
    return components
