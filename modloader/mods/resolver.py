# modloader/mods/resolver.py
from __future__ import annotations
import logging
import weakref
from collections.abc import Iterable, Sequence
from typing import Literal

from modloader.mods.constants import HOST_LOADER_ID
from modloader.mods.metadata import DependencyDeclaration
from modloader.mods.mod import DependencyStatus, Mod, ResolvedDependency
from modloader.versioning.compare import isAtLeast

logger = logging.getLogger(__name__)

__all__ = ["CycleDetection", "DependencyResolver"]

CycleDetection = Literal["direct", "full"]



class DependencyResolver:
    """
    Checks each mod's declared dependencies against the set of known mods.

    For every declaration, in order:
      - the host-loader id is checked against the host's own version;
      - any other name is looked up (exact, case-sensitive) among known mods;
        a missing mod gives INVALID_NOT_FOUND;
      - a found mod older than the minimum gives INVALID_VERSION;
      - a found mod that depends back on this one gives INVALID_RECURSIVE;
      - otherwise a found mod that is itself invalid gives INVALID_NOT_FOUND.

    cycleDetection="direct" only recognizes mutual (A <-> B) and self
    dependencies as recursive. Longer cycles still terminate: a mod re-entered
    while its own validity is being computed counts as invalid, which surfaces
    as INVALID_NOT_FOUND along the cycle.

    cycleDetection="full" replaces the one-hop check with a reachability
    search, so every edge that lies on a cycle of any length is reported as
    INVALID_RECURSIVE.

    Results are cached on each Mod and reused while its declared dependency
    list is unchanged. Changes to *other* mods do not invalidate the cache;
    pass force=True (or call invalidate()) after the registry changes.
    """

    def __init__(
        self,
        hostVersion: str,
        *,
        hostLoaderId: str = HOST_LOADER_ID,
        cycleDetection: CycleDetection = "direct",
    ):
        if cycleDetection not in ("direct", "full"):
            raise ValueError(f"Unknown cycle detection mode {cycleDetection!r}")
        self.hostVersion = hostVersion
        self.hostLoaderId = hostLoaderId
        self.cycleDetection = cycleDetection
        self._inProgress: set[int] = set()

    # ----- Public API -----

    def resolve(self, mod: Mod, allMods: Iterable[Mod], *, force: bool = False) -> tuple[ResolvedDependency, ...]:
        """Returns the resolved dependency list of `mod`, recomputing it when stale or forced."""
        if not force and mod.hasFreshDependencies:
            return mod.dependencies
        known = allMods if isinstance(allMods, Sequence) else list(allMods)
        return self._resolve(mod, known)

    def isValid(self, mod: Mod, allMods: Iterable[Mod]) -> bool:
        """True when every declared dependency of `mod` resolves to VALID."""
        if not mod.metadata.dependencies:
            return True
        known = allMods if isinstance(allMods, Sequence) else list(allMods)
        return self._isValid(mod, known)

    def invalidate(self, mod: Mod) -> None:
        mod.clearResolvedDependencies()

    # ----- Internals -----

    def _isValid(self, mod: Mod, known: Sequence[Mod]) -> bool:
        if not mod.metadata.dependencies:
            return True
        if mod.hasFreshDependencies:
            return all(dep.isValid for dep in mod.dependencies)
        if id(mod) in self._inProgress:
            # Re-entered through a cycle longer than the one-hop check catches
            logger.debug("Dependency cycle re-enters '%s'; treating it as invalid", mod.name)
            return False
        return all(dep.isValid for dep in self._resolve(mod, known))

    def _resolve(self, mod: Mod, known: Sequence[Mod]) -> tuple[ResolvedDependency, ...]:
        self._inProgress.add(id(mod))
        try:
            resolved = tuple(self._resolveOne(mod, declaration, known) for declaration in mod.metadata.dependencies)
        finally:
            self._inProgress.discard(id(mod))

        mod.setResolvedDependencies(resolved)
        for dep in resolved:
            if not dep.isValid:
                logger.info(
                    "Mod '%s': dependency '%s' (>= %s) is %s (detected %s)",
                    mod.name,
                    dep.name,
                    dep.minimumVersion or "any",
                    dep.status.value,
                    dep.detectedVersion or "nothing",
                )
        return resolved

    def _findMod(self, name: str, known: Sequence[Mod]) -> Mod | None:
        for candidate in known:
            if candidate.name == name:
                return candidate
        return None

    def _resolveOne(self, mod: Mod, declaration: DependencyDeclaration, known: Sequence[Mod]) -> ResolvedDependency:
        if declaration.isHostLoader(self.hostLoaderId):
            status = DependencyStatus.VALID
            if not isAtLeast(self.hostVersion, declaration.minimumVersion):
                status = DependencyStatus.INVALID_VERSION
            return ResolvedDependency(
                declaration=declaration,
                status=status,
                detectedVersion=self.hostVersion,
                isHostLoader=True,
            )

        target = self._findMod(declaration.name, known)
        if target is None:
            return ResolvedDependency(declaration=declaration, status=DependencyStatus.INVALID_NOT_FOUND)

        status = DependencyStatus.VALID
        if not isAtLeast(target.version, declaration.minimumVersion):
            status = DependencyStatus.INVALID_VERSION

        if self._dependsBackOn(target, mod, known):
            status = DependencyStatus.INVALID_RECURSIVE
        elif not self._isValid(target, known):
            status = DependencyStatus.INVALID_NOT_FOUND

        return ResolvedDependency(
            declaration=declaration,
            status=status,
            detectedVersion=target.version,
            targetName=target.name,
            targetRef=weakref.ref(target),
        )

    def _dependsBackOn(self, target: Mod, mod: Mod, known: Sequence[Mod]) -> bool:
        if self.cycleDetection == "direct":
            return target.declaresDependencyOn(mod.name)
        return self._reaches(target, mod.name, known)

    def _reaches(self, start: Mod, goalName: str, known: Sequence[Mod]) -> bool:
        """Depth-first search: can `start` reach a mod named `goalName` through declared dependencies?"""
        visited: set[str] = set()
        stack = [start]
        while stack:
            current = stack.pop()
            if current.name in visited:
                continue
            visited.add(current.name)
            for declaration in current.metadata.dependencies:
                if declaration.isHostLoader(self.hostLoaderId):
                    continue
                if declaration.name == goalName:
                    return True
                nextMod = self._findMod(declaration.name, known)
                if nextMod is not None and nextMod.name not in visited:
                    stack.append(nextMod)
        return False
