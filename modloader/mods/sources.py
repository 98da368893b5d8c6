# modloader/mods/sources.py
from __future__ import annotations
import logging
import zipfile
import zlib
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Protocol

from modloader.core.errors import (
    EmptyBundleError,
    MetadataInvalidError,
    ModLoadError,
    SourceUnreadableError,
)
from modloader.mods.constants import (
    ARCHIVE_EXTENSION,
    ASSETS_DIRECTORY_NAME,
    LIBRARY_EXTENSION,
    METADATA_FILE_NAMES,
)
from modloader.mods.metadata import MetadataParseError, PackageMetadata, parseMetadata

if TYPE_CHECKING:
    from modloader.app.settings import LoaderConfig

logger = logging.getLogger(__name__)

__all__ = [
    "LoadedBundle",
    "PackageSource",
    "BasePackageSource",
    "DirectorySource",
    "ArchiveSource",
]



@dataclass(frozen=True, slots=True)
class LoadedBundle:
    """
    Normalized result of reading one mod, whatever it was stored in.

    Asset keys are POSIX paths relative to the assets folder, so code that
    injects assets never needs to know where the bundle came from.
    """
    metadata: PackageMetadata
    assets: Mapping[str, bytes] = field(default_factory=dict)
    rawLibrary: bytes | None = None
    metadataFileName: str = field(default="", compare=False)

    @property
    def isAssetMod(self) -> bool:
        return len(self.assets) > 0

    @property
    def isCodeMod(self) -> bool:
        return self.rawLibrary is not None

    @property
    def isLoadable(self) -> bool:
        return self.isAssetMod or self.isCodeMod



class PackageSource(Protocol):
    kind: str

    def candidates(self, root: Path) -> list[str]:
        ...

    def load(self, location: Path) -> LoadedBundle | None:
        ...



class _SourceView(Protocol):
    """Read-only view over the top level of one mod location."""

    def topLevelFiles(self) -> list[str]:
        ...

    def topLevelDirectories(self) -> list[str]:
        ...

    def read(self, name: str) -> bytes:
        ...

    def collectFiles(self, directoryName: str) -> dict[str, bytes]:
        ...



def _matchName(names: list[str], wanted: str) -> str | None:
    wantedLower = wanted.lower()
    for name in names:
        if name.lower() == wantedLower:
            return name
    return None



class BasePackageSource:
    """
    Shared loading steps. Subclasses only decide how a location is opened and
    which candidate names live under the mods root.
    """
    kind: str

    def __init__(
        self,
        *,
        metadataFileNames: tuple[str, ...] = METADATA_FILE_NAMES,
        assetsDirectoryName: str = ASSETS_DIRECTORY_NAME,
        libraryExtension: str = LIBRARY_EXTENSION,
    ):
        self.metadataFileNames = tuple(metadataFileNames)
        self.assetsDirectoryName = assetsDirectoryName
        self.libraryExtension = libraryExtension

    @classmethod
    def fromConfig(cls, config: LoaderConfig):
        return cls(
            metadataFileNames=config.metadataFileNames,
            assetsDirectoryName=config.assetsDirectoryName,
            libraryExtension=config.libraryExtension,
        )

    # ----- Subclass hooks -----

    def candidates(self, root: Path) -> list[str]:
        raise NotImplementedError

    def _exists(self, location: Path) -> bool:
        raise NotImplementedError

    def _open(self, location: Path):
        raise NotImplementedError

    # ----- Loading -----

    def load(self, location: Path) -> LoadedBundle | None:
        """
        Reads one mod. Returns None when the location does not exist; raises a
        ModLoadError subclass when the candidate must be rejected.
        """
        location = Path(location)
        identity = location.name
        if not self._exists(location):
            logger.debug("Skipping %s source '%s': location does not exist", self.kind, location)
            return None

        try:
            with self._open(location) as view:
                bundle = self._buildBundle(identity, view)
        except ModLoadError:
            raise
        except (OSError, zipfile.BadZipFile, zlib.error) as err:
            raise SourceUnreadableError(identity, f"cannot read {self.kind} source: {err}") from err

        logger.debug(
            "Read %s mod '%s' from '%s' (assets=%d, library=%s)",
            self.kind,
            bundle.metadata.name,
            location,
            len(bundle.assets),
            bundle.isCodeMod,
        )
        return bundle

    def _buildBundle(self, identity: str, view: _SourceView) -> LoadedBundle:
        topFiles = view.topLevelFiles()

        # 1) Metadata is mandatory, whatever kind of mod this is
        metadataFileName = None
        for candidate in self.metadataFileNames:
            metadataFileName = _matchName(topFiles, candidate)
            if metadataFileName is not None:
                break
        if metadataFileName is None:
            raise MetadataInvalidError(
                identity,
                f"no metadata descriptor found (looked for {', '.join(self.metadataFileNames)})",
            )
        try:
            metadata = parseMetadata(metadataFileName, view.read(metadataFileName))
        except MetadataParseError as err:
            raise MetadataInvalidError(identity, str(err)) from err

        # 2) Assets
        assets: dict[str, bytes] = {}
        assetsDir = _matchName(view.topLevelDirectories(), self.assetsDirectoryName)
        if assetsDir is not None:
            assets = view.collectFiles(assetsDir)

        # 3) Library
        rawLibrary = None
        if metadata.declaresLibrary(self.libraryExtension):
            libraryFile = _matchName(topFiles, metadata.libraryName or "")
            if libraryFile is not None:
                rawLibrary = view.read(libraryFile)
            else:
                logger.warning(
                    "Mod '%s' declares library '%s' but it was not found; treating it as having no code",
                    metadata.name,
                    metadata.libraryName,
                )

        bundle = LoadedBundle(
            metadata=metadata,
            assets=assets,
            rawLibrary=rawLibrary,
            metadataFileName=metadataFileName,
        )

        # 4) Something must be there to load
        if not bundle.isLoadable:
            raise EmptyBundleError(identity, f"mod '{metadata.name}' has neither assets nor a library")
        return bundle



# ------------------------------------------------
#               Directory-based mods
# ------------------------------------------------

class _DirectoryView:
    def __init__(self, root: Path):
        self.root = root

    def topLevelFiles(self) -> list[str]:
        return sorted(path.name for path in self.root.iterdir() if path.is_file())

    def topLevelDirectories(self) -> list[str]:
        return sorted(path.name for path in self.root.iterdir() if path.is_dir())

    def read(self, name: str) -> bytes:
        return (self.root / name).read_bytes()

    def collectFiles(self, directoryName: str) -> dict[str, bytes]:
        base = self.root / directoryName
        files = sorted(
            (path for path in base.rglob("*") if path.is_file()),
            key=lambda path: path.relative_to(base).as_posix(),
        )
        return {path.relative_to(base).as_posix(): path.read_bytes() for path in files}



class DirectorySource(BasePackageSource):
    kind = "directory"

    def candidates(self, root: Path) -> list[str]:
        root = Path(root)
        if not root.is_dir():
            return []
        names = [path.name for path in root.iterdir() if path.is_dir() and not path.name.startswith(".")]
        return sorted(names, key=lambda name: (name.lower(), name))

    def _exists(self, location: Path) -> bool:
        return location.is_dir()

    @contextmanager
    def _open(self, location: Path) -> Iterator[_DirectoryView]:
        yield _DirectoryView(location)



# ------------------------------------------------
#                Archive-based mods
# ------------------------------------------------

def _normalizeEntryName(name: str) -> str:
    # Archives written on Windows sometimes use backslashes
    return name.replace("\\", "/").lstrip("/")



class _ArchiveView:
    def __init__(self, archive: zipfile.ZipFile):
        self.archive = archive
        # normalized name -> ZipInfo, files only
        self._entries: dict[str, zipfile.ZipInfo] = {}
        for info in archive.infolist():
            name = _normalizeEntryName(info.filename)
            if not name or info.is_dir() or name.endswith("/"):
                continue
            self._entries.setdefault(name, info)

    def topLevelFiles(self) -> list[str]:
        return sorted(name for name in self._entries if "/" not in name)

    def topLevelDirectories(self) -> list[str]:
        # Directory entries are optional in zips; derive them from file paths
        return sorted({name.split("/", 1)[0] for name in self._entries if "/" in name})

    def read(self, name: str) -> bytes:
        return self.archive.read(self._entries[name])

    def collectFiles(self, directoryName: str) -> dict[str, bytes]:
        prefix = directoryName + "/"
        out: dict[str, bytes] = {}
        for name in sorted(self._entries):
            if not name.startswith(prefix):
                continue
            key = str(PurePosixPath(name[len(prefix):]))
            out[key] = self.archive.read(self._entries[name])
        return out



class ArchiveSource(BasePackageSource):
    kind = "archive"

    def __init__(self, *, archiveExtension: str = ARCHIVE_EXTENSION, **kwargs):
        super().__init__(**kwargs)
        self.archiveExtension = archiveExtension

    @classmethod
    def fromConfig(cls, config: LoaderConfig):
        return cls(
            archiveExtension=config.archiveExtension,
            metadataFileNames=config.metadataFileNames,
            assetsDirectoryName=config.assetsDirectoryName,
            libraryExtension=config.libraryExtension,
        )

    def candidates(self, root: Path) -> list[str]:
        root = Path(root)
        if not root.is_dir():
            return []
        extension = self.archiveExtension.lower()
        names = [
            path.name
            for path in root.iterdir()
            if path.is_file() and not path.name.startswith(".") and path.suffix.lower() == extension
        ]
        return sorted(names, key=lambda name: (name.lower(), name))

    def _exists(self, location: Path) -> bool:
        return location.is_file()

    @contextmanager
    def _open(self, location: Path) -> Iterator[_ArchiveView]:
        # Read-only: loading never needs write access to the archive
        with zipfile.ZipFile(location, mode="r") as archive:
            yield _ArchiveView(archive)
