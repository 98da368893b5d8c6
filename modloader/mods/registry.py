# modloader/mods/registry.py
from __future__ import annotations
import logging
import traceback
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from modloader.app.settings import LoaderConfig
from modloader.core.errors import (
    DuplicateModError,
    LoadFailureKind,
    ModLoadError,
    SourceNotFoundError,
)
from modloader.core.logger import getModLogger, logContext
from modloader.mods.components import AssetInjector, ComponentHost
from modloader.mods.mod import Mod, ResolvedDependency
from modloader.mods.resolver import DependencyResolver
from modloader.mods.sources import ArchiveSource, BasePackageSource, DirectorySource, LoadedBundle

logger = logging.getLogger(__name__)

__all__ = [
    "LoadFailure",
    "ModReport",
    "ModRegistry",
]



@dataclass(frozen=True, slots=True)
class LoadFailure:
    """A candidate that did not make it into the registry, and why."""
    identity: str
    kind: LoadFailureKind
    reason: str
    sourceKind: str | None = None
    stack: str | None = field(default=None, compare=False, repr=False)



@dataclass(frozen=True, slots=True)
class ModReport:
    """
    Per-mod verdict for the host: either loaded, or the reasons it is not.
    `status` is "loaded", "invalid" (dependency problems), "failed"
    (activation raised) or "rejected" (candidate discarded during discovery).
    """
    identity: str
    status: str
    name: str | None = None
    version: str | None = None
    reasons: tuple[str, ...] = ()



class ModRegistry:
    """
    Owns every successfully loaded mod under one mods directory.

    Mods are keyed by their identity (directory or archive file name) and are
    only added during discover(). Dependency resolution looks mods up by name
    in the whole set, so discovery order never matters for correctness.
    """

    def __init__(
        self,
        config: LoaderConfig,
        *,
        sources: list[BasePackageSource] | None = None,
        resolver: DependencyResolver | None = None,
    ):
        self.config = config
        self.sources: list[BasePackageSource] = sources if sources is not None else [
            DirectorySource.fromConfig(config),
            ArchiveSource.fromConfig(config),
        ]
        self.resolver = resolver or DependencyResolver(
            config.hostVersion,
            hostLoaderId=config.hostLoaderId,
            cycleDetection=config.cycleDetection,
        )
        self._mods: dict[str, Mod] = {}
        self.failures: list[LoadFailure] = []
        self.activationFailures: dict[str, LoadFailure] = {}
        self.activated: list[Mod] = []

    # ----- Container protocol -----

    def __iter__(self) -> Iterator[Mod]:
        return iter(self._mods.values())

    def __len__(self) -> int:
        return len(self._mods)

    def __contains__(self, nameOrIdentity: object) -> bool:
        if isinstance(nameOrIdentity, Mod):
            return nameOrIdentity in self._mods.values()
        return self.getMod(str(nameOrIdentity)) is not None

    @property
    def mods(self) -> list[Mod]:
        return list(self._mods.values())

    @property
    def modsDirectory(self) -> Path:
        return self.config.modsDirectory

    def getMod(self, nameOrIdentity: str) -> Mod | None:
        """Looks a mod up by its metadata name first, then by identity."""
        for mod in self._mods.values():
            if mod.name == nameOrIdentity:
                return mod
        return self._mods.get(nameOrIdentity)

    # ----- Discovery -----

    def discover(self) -> list[Mod]:
        """
        Loads every directory and archive candidate under the mods directory.

        A missing mods directory means there is nothing to load. Each failing
        candidate is recorded in `failures` once and discovery goes on; later
        calls skip candidates that are already loaded or already rejected.
        """
        root = Path(self.modsDirectory)
        if not root.is_dir():
            logger.info("Mods directory '%s' does not exist; no mods to load", root)
            return []

        loaded: list[Mod] = []
        rejected = {failure.identity for failure in self.failures}
        for source in self.sources:
            for identity in source.candidates(root):
                if identity in self._mods or identity in rejected:
                    continue
                mod = self._tryLoad(source, root / identity)
                if mod is not None:
                    loaded.append(mod)

        logger.info(
            "Mods discovered: %d loaded, %d rejected (root=%s)",
            len(loaded),
            len(self.failures),
            root,
        )
        return loaded

    def loadCandidate(self, identity: str) -> Mod:
        """
        Loads a single named directory or archive from the mods directory.
        Raises SourceNotFoundError if no source has it, or the ModLoadError
        that rejected it.
        """
        root = Path(self.modsDirectory)
        location = root / identity
        for source in self.sources:
            bundle = source.load(location)
            if bundle is None:
                continue
            return self._register(source, identity, location, bundle)
        raise SourceNotFoundError(identity, f"no mod directory or archive at '{location}'")

    def _register(self, source: BasePackageSource, identity: str, location: Path, bundle: LoadedBundle) -> Mod:
        existing = self.getMod(bundle.metadata.name)
        if existing is not None:
            raise DuplicateModError(
                identity,
                f"mod name '{bundle.metadata.name}' is already provided by '{existing.identity}'",
            )
        mod = Mod(identity, bundle, sourcePath=location, isArchive=isinstance(source, ArchiveSource))
        self._mods[identity] = mod
        self.failures = [failure for failure in self.failures if failure.identity != identity]
        logger.info("Loaded mod '%s' v%s from %s '%s'", mod.name, mod.version, source.kind, identity)
        return mod

    def _tryLoad(self, source: BasePackageSource, location: Path) -> Mod | None:
        identity = location.name
        with logContext(identity=identity, phase="discover"):
            try:
                bundle = source.load(location)
                if bundle is None:
                    return None
                return self._register(source, identity, location, bundle)
            except ModLoadError as err:
                logger.warning("Rejected mod candidate '%s' (%s): %s", identity, err.kind.value, err.reason)
                self.failures.append(LoadFailure(identity, err.kind, err.reason, source.kind))
            except Exception as err:
                # A broken candidate must never stop discovery of the others
                logger.exception("Unexpected error while loading mod candidate '%s': %s", identity, err)
                self.failures.append(LoadFailure(
                    identity,
                    LoadFailureKind.SOURCE_UNREADABLE,
                    f"{type(err).__name__}: {err}",
                    source.kind,
                    traceback.format_exc(),
                ))
        return None

    # ----- Resolution -----

    def resolveAll(self, *, force: bool = False) -> dict[str, tuple[ResolvedDependency, ...]]:
        """
        Resolves dependencies of every held mod. With force=True all cached
        resolutions are dropped first, so changes anywhere in the registry
        are taken into account.
        """
        mods = self.mods
        if force:
            for mod in mods:
                self.resolver.invalidate(mod)
        return {mod.name: self.resolver.resolve(mod, mods) for mod in mods}

    def isValid(self, modOrName: Mod | str) -> bool:
        mod = modOrName if isinstance(modOrName, Mod) else self.getMod(modOrName)
        if mod is None:
            raise KeyError(f"Unknown mod '{modOrName}'")
        return self.resolver.isValid(mod, self.mods)

    def validMods(self) -> list[Mod]:
        return [mod for mod in self.mods if self.isValid(mod)]

    def invalidMods(self) -> list[Mod]:
        return [mod for mod in self.mods if not self.isValid(mod)]

    def report(self) -> list[ModReport]:
        """One entry per held mod (loaded / invalid / failed) and per rejected candidate."""
        reports: list[ModReport] = []
        mods = self.mods
        for mod in mods:
            resolved = self.resolver.resolve(mod, mods)
            reasons = tuple(
                f"{dep.name} (>= {dep.minimumVersion or 'any'}): {dep.status.value}"
                for dep in resolved
                if not dep.isValid
            )
            status = "invalid" if reasons else "loaded"
            activationFailure = self.activationFailures.get(mod.identity)
            if activationFailure is not None:
                status = "failed"
                reasons += (f"{activationFailure.kind.value}: {activationFailure.reason}",)
            reports.append(ModReport(
                identity=mod.identity,
                status=status,
                name=mod.name,
                version=mod.version,
                reasons=reasons,
            ))
        for failure in self.failures:
            reports.append(ModReport(
                identity=failure.identity,
                status="rejected",
                reasons=(f"{failure.kind.value}: {failure.reason}",),
            ))
        return reports

    # ----- Activation -----

    def activate(self, injector: AssetInjector, host: ComponentHost, hostHandle: Any) -> list[Mod]:
        """
        Activates every valid mod in registry order. The library runs and its
        components are built first; assets are injected only once that
        succeeded, then the components are added to the host. Invalid mods are
        skipped. A mod that fails to activate is disposed, recorded in
        `activationFailures` and skipped.
        """
        mods = self.mods
        for mod in mods:
            self.resolver.resolve(mod, mods)

        activated: list[Mod] = []
        for mod in mods:
            if mod in self.activated or mod.identity in self.activationFailures:
                continue
            modLog = getModLogger(mod.name)
            if not self.resolver.isValid(mod, mods):
                modLog.warning("Not activating mod '%s': dependencies are not satisfied", mod.name)
                continue
            with logContext(modId=mod.name, identity=mod.identity, phase="activate"):
                try:
                    mod.initializeLibrary(hostHandle)
                    assetCount = mod.initializeAssets(injector)
                    mod.initializeComponents(host)
                except Exception as err:
                    modLog.exception("Failed to activate mod '%s': %s", mod.name, err)
                    self.activationFailures[mod.identity] = LoadFailure(
                        mod.identity,
                        LoadFailureKind.ACTIVATION_FAILED,
                        f"{type(err).__name__}: {err}",
                        None,
                        traceback.format_exc(),
                    )
                    self._disposeQuietly(mod, host)
                    continue
                activated.append(mod)
                self.activated.append(mod)
                logger.info(
                    "Activated mod '%s' v%s (assets=%d, components=%d)",
                    mod.name,
                    mod.version,
                    assetCount,
                    len(mod.components),
                )
        return activated

    def unloadAll(self, host: ComponentHost | None = None) -> None:
        """Disposes every activated mod as a whole, most recently activated first."""
        for mod in reversed(self.activated):
            if self._disposeQuietly(mod, host):
                logger.info("Unloaded mod '%s'", mod.name)
        self.activated = []

    def _disposeQuietly(self, mod: Mod, host: ComponentHost | None) -> bool:
        # A host that refuses a removal must not stop the other mods
        try:
            mod.dispose(host)
        except Exception as err:
            getModLogger(mod.name).error(
                "Cleanup of mod '%s' failed: %s: %s", mod.name, type(err).__name__, err, exc_info=True
            )
            return False
        return True
