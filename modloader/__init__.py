# modloader/__init__.py
from .app.settings import LoaderConfig, LoggingConfig, loadConfig
from .mods.components import AssetInjector, ComponentEntry, ComponentHost
from .mods.metadata import DependencyDeclaration, PackageMetadata
from .mods.mod import DependencyStatus, Mod, ResolvedDependency
from .mods.registry import LoadFailure, ModRegistry, ModReport
from .mods.resolver import DependencyResolver
from .mods.sources import ArchiveSource, DirectorySource, LoadedBundle
from .versioning.compare import compareVersions

__all__ = [
    "LoaderConfig",
    "LoggingConfig",
    "loadConfig",
    "AssetInjector",
    "ComponentEntry",
    "ComponentHost",
    "DependencyDeclaration",
    "PackageMetadata",
    "DependencyStatus",
    "Mod",
    "ResolvedDependency",
    "LoadFailure",
    "ModRegistry",
    "ModReport",
    "DependencyResolver",
    "ArchiveSource",
    "DirectorySource",
    "LoadedBundle",
    "compareVersions",
]
