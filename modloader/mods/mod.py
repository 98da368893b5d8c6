# modloader/mods/mod.py
from __future__ import annotations
import weakref
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import ModuleType
from typing import Any

from modloader.core.logger import getModLogger
from modloader.mods.components import (
    AssetInjector,
    ComponentHost,
    discoverComponents,
    libraryModuleName,
    loadLibraryModule,
    unloadLibraryModule,
)
from modloader.mods.metadata import DependencyDeclaration, PackageMetadata
from modloader.mods.sources import LoadedBundle
from modloader.versioning.compare import compareVersions

__all__ = [
    "DependencyStatus",
    "ResolvedDependency",
    "Mod",
]



class DependencyStatus(Enum):
    VALID = "valid"
    INVALID_VERSION = "invalidVersion"
    INVALID_NOT_FOUND = "invalidNotFound"
    INVALID_RECURSIVE = "invalidRecursive"



@dataclass(frozen=True, slots=True)
class ResolvedDependency:
    """
    Outcome of checking one declared dependency against the registry.

    Holds only a weak reference to the target mod: the registry owns mods,
    resolutions merely point at them.
    """
    declaration: DependencyDeclaration
    status: DependencyStatus
    detectedVersion: str | None = None
    isHostLoader: bool = False
    targetName: str | None = None
    targetRef: weakref.ReferenceType[Mod] | None = field(default=None, compare=False, repr=False)

    @property
    def name(self) -> str:
        return self.declaration.name

    @property
    def minimumVersion(self) -> str:
        return self.declaration.minimumVersion

    @property
    def target(self) -> Mod | None:
        return self.targetRef() if self.targetRef is not None else None

    @property
    def isValid(self) -> bool:
        return self.status is DependencyStatus.VALID



class Mod:
    """
    One loaded mod: metadata, assets, optional library bytes and, once
    activated, the library module and its components.

    A Mod is built from exactly one LoadedBundle and is torn down as a whole.
    """

    def __init__(
        self,
        identity: str,
        bundle: LoadedBundle,
        *,
        sourcePath: Path | None = None,
        isArchive: bool = False,
    ):
        self.identity = identity
        self.sourcePath = sourcePath
        self.isArchive = isArchive
        self.metadata: PackageMetadata = bundle.metadata
        self.assets: dict[str, bytes] = dict(bundle.assets)
        self.rawLibrary: bytes | None = bundle.rawLibrary
        self.metadataFileName = bundle.metadataFileName

        self.library: ModuleType | None = None
        self.components: list[Any] = []
        self._hostedComponents: list[Any] = []

        self._dependencies: tuple[ResolvedDependency, ...] = ()
        self._dependenciesKey: str | None = None

    def __repr__(self) -> str:
        kind = "archive" if self.isArchive else "directory"
        return f"Mod({self.name!r}, version={self.version!r}, identity={self.identity!r}, {kind})"

    # ----- Metadata shortcuts -----

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def version(self) -> str:
        return self.metadata.version

    @property
    def isAssetMod(self) -> bool:
        return len(self.assets) > 0

    @property
    def isCodeMod(self) -> bool:
        return self.rawLibrary is not None

    def compareVersionsWith(self, other: Mod) -> int:
        return compareVersions(self.version, other.version)

    def declaresDependencyOn(self, name: str) -> bool:
        return self.metadata.declaresDependencyOn(name)

    # ----- Resolved dependencies -----

    @property
    def dependencies(self) -> tuple[ResolvedDependency, ...]:
        """Last resolution result. Use DependencyResolver.resolve() to refresh it."""
        return self._dependencies

    @property
    def hasFreshDependencies(self) -> bool:
        return self._dependenciesKey == self.metadata.dependencyKey

    def setResolvedDependencies(self, dependencies: tuple[ResolvedDependency, ...]) -> None:
        self._dependencies = tuple(dependencies)
        self._dependenciesKey = self.metadata.dependencyKey

    def clearResolvedDependencies(self) -> None:
        self._dependencies = ()
        self._dependenciesKey = None

    # ----- Activation -----

    def initializeAssets(self, injector: AssetInjector) -> int:
        """Hands every asset to the injector, in asset map order."""
        for path, data in self.assets.items():
            injector.inject(path, data)
        getModLogger(self.name).debug("Injected %d asset(s)", len(self.assets))
        return len(self.assets)

    def initializeLibrary(self, hostHandle: Any) -> list[Any]:
        """Executes the library (if any) and instantiates its exported components."""
        if self.rawLibrary is None or self.library is not None:
            return self.components

        fileName = self.metadata.libraryName or f"{self.identity}.py"
        module = loadLibraryModule(
            self.rawLibrary,
            moduleName=libraryModuleName(self.identity),
            fileName=fileName,
        )
        try:
            components = discoverComponents(module, hostHandle)
        except Exception:
            unloadLibraryModule(module)
            raise
        self.library = module
        self.components = components
        getModLogger(self.name).info("Loaded library '%s' with %d component(s)", fileName, len(components))
        return components

    def initializeComponents(self, host: ComponentHost) -> None:
        for component in self.components:
            host.addComponent(component)
            self._hostedComponents.append(component)
            host.initialize(component)

    def dispose(self, host: ComponentHost | None = None) -> None:
        """
        Removes the components this mod actually added to the host, newest
        first, and drops its library. The library is dropped even when the
        host fails to remove a component.
        """
        modLog = getModLogger(self.name)
        try:
            if host is not None:
                while self._hostedComponents:
                    component = self._hostedComponents.pop()
                    host.removeComponent(component)
                    modLog.debug("Removed component %s", type(component).__name__)
        finally:
            self._hostedComponents = []
            self.components = []
            if self.library is not None:
                unloadLibraryModule(self.library)
                self.library = None
