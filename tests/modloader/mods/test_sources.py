import zipfile

import pytest

from conftest import metadata_xml, write_mod_dir, write_mod_zip
from modloader.core.errors import (
    EmptyBundleError,
    LoadFailureKind,
    MetadataInvalidError,
    SourceUnreadableError,
)
from modloader.mods.sources import ArchiveSource, DirectorySource

LIBRARY_SOURCE = b"COMPONENTS = []\n"


def _full_mod_files(name: str = "Trails") -> dict[str, bytes | str]:
    return {
        "Metadata.xml": metadata_xml(name, "1.0", library=f"{name}.py", deps=[("HAT", "1.0")]),
        f"{name}.py": LIBRARY_SOURCE,
        "Assets/textures/trail.png": b"\x89PNG-trail",
        "Assets/sounds/step.ogg": b"OggS-step",
        "readme.txt": "not an asset",
    }


def test_directory_source_loads_full_bundle(mods_root):
    write_mod_dir(mods_root, "Trails", _full_mod_files())

    bundle = DirectorySource().load(mods_root / "Trails")

    assert bundle is not None
    assert bundle.metadata.name == "Trails"
    assert bundle.rawLibrary == LIBRARY_SOURCE
    assert dict(bundle.assets) == {
        "sounds/step.ogg": b"OggS-step",
        "textures/trail.png": b"\x89PNG-trail",
    }
    assert bundle.isAssetMod and bundle.isCodeMod


def test_archive_source_loads_full_bundle(mods_root):
    write_mod_zip(mods_root, "Trails.zip", _full_mod_files())

    bundle = ArchiveSource().load(mods_root / "Trails.zip")

    assert bundle is not None
    assert bundle.metadata.name == "Trails"
    assert bundle.rawLibrary == LIBRARY_SOURCE
    assert set(bundle.assets) == {"sounds/step.ogg", "textures/trail.png"}


def test_directory_and_archive_produce_equal_bundles(mods_root):
    files = _full_mod_files()
    write_mod_dir(mods_root, "Trails", files)
    write_mod_zip(mods_root, "Trails.zip", files)

    fromDir = DirectorySource().load(mods_root / "Trails")
    fromZip = ArchiveSource().load(mods_root / "Trails.zip")

    assert fromDir == fromZip
    assert list(fromDir.assets) == list(fromZip.assets)


def test_names_are_matched_case_insensitively(mods_root):
    write_mod_dir(mods_root, "Loud", {
        "METADATA.XML": metadata_xml("Loud", library="loud.PY"),
        "Loud.py": LIBRARY_SOURCE,
        "assets/a.bin": b"a",
    })
    write_mod_zip(mods_root, "Loud.zip", {
        "metadata.xml": metadata_xml("Loud", library="loud.PY"),
        "LOUD.py": LIBRARY_SOURCE,
        "ASSETS/a.bin": b"a",
    })

    for bundle in (DirectorySource().load(mods_root / "Loud"), ArchiveSource().load(mods_root / "Loud.zip")):
        assert bundle.rawLibrary == LIBRARY_SOURCE
        assert dict(bundle.assets) == {"a.bin": b"a"}


def test_json5_descriptor_is_accepted(mods_root):
    write_mod_dir(mods_root, "Json", {
        "metadata.json5": "{name: 'Json', version: '0.1'}",
        "Assets/x.txt": "x",
    })
    bundle = DirectorySource().load(mods_root / "Json")
    assert bundle.metadata.name == "Json"
    assert bundle.metadataFileName == "metadata.json5"


def test_assets_without_metadata_are_rejected(mods_root):
    write_mod_dir(mods_root, "NoMeta", {"Assets/a.png": b"a"})
    write_mod_zip(mods_root, "NoMeta.zip", {"Assets/a.png": b"a"})

    with pytest.raises(MetadataInvalidError) as excInfo:
        DirectorySource().load(mods_root / "NoMeta")
    assert excInfo.value.kind is LoadFailureKind.METADATA_INVALID
    assert excInfo.value.identity == "NoMeta"

    with pytest.raises(MetadataInvalidError):
        ArchiveSource().load(mods_root / "NoMeta.zip")


def test_metadata_only_in_subfolder_is_not_found(mods_root):
    write_mod_zip(mods_root, "Nested.zip", {
        "Nested/Metadata.xml": metadata_xml("Nested"),
        "Assets/a.png": b"a",
    })
    with pytest.raises(MetadataInvalidError):
        ArchiveSource().load(mods_root / "Nested.zip")


def test_malformed_metadata_is_rejected(mods_root):
    write_mod_dir(mods_root, "Broken", {"Metadata.xml": "<Metadata><Name>Broken", "Assets/a": "a"})
    with pytest.raises(MetadataInvalidError):
        DirectorySource().load(mods_root / "Broken")


def test_metadata_without_content_is_an_empty_bundle(mods_root):
    write_mod_dir(mods_root, "Empty", {"Metadata.xml": metadata_xml("Empty")})
    with pytest.raises(EmptyBundleError) as excInfo:
        DirectorySource().load(mods_root / "Empty")
    assert excInfo.value.kind is LoadFailureKind.EMPTY_BUNDLE


def test_missing_library_is_treated_as_no_code(mods_root):
    write_mod_dir(mods_root, "Half", {
        "Metadata.xml": metadata_xml("Half", library="Missing.py"),
        "Assets/a.png": b"a",
    })
    bundle = DirectorySource().load(mods_root / "Half")
    assert bundle.rawLibrary is None
    assert bundle.isAssetMod and not bundle.isCodeMod


def test_missing_library_without_assets_is_rejected(mods_root):
    write_mod_dir(mods_root, "Ghost", {"Metadata.xml": metadata_xml("Ghost", library="Ghost.py")})
    with pytest.raises(EmptyBundleError):
        DirectorySource().load(mods_root / "Ghost")


def test_library_with_foreign_extension_is_ignored(mods_root):
    write_mod_dir(mods_root, "Native", {
        "Metadata.xml": metadata_xml("Native", library="Native.dll"),
        "Native.dll": b"MZ",
        "Assets/a": b"a",
    })
    bundle = DirectorySource().load(mods_root / "Native")
    assert bundle.rawLibrary is None

    custom = DirectorySource(libraryExtension=".dll").load(mods_root / "Native")
    assert custom.rawLibrary == b"MZ"


def test_missing_location_is_not_applicable(mods_root):
    assert DirectorySource().load(mods_root / "Nope") is None
    assert ArchiveSource().load(mods_root / "Nope.zip") is None


def test_corrupt_archive_is_reported_as_unreadable(mods_root):
    (mods_root / "Bad.zip").write_bytes(b"definitely not a zip")
    with pytest.raises(SourceUnreadableError) as excInfo:
        ArchiveSource().load(mods_root / "Bad.zip")
    assert excInfo.value.kind is LoadFailureKind.SOURCE_UNREADABLE


def test_archive_is_opened_read_only(mods_root, monkeypatch):
    zipPath = write_mod_zip(mods_root, "Ro.zip", _full_mod_files("Ro"))
    modes: list[str] = []
    realZipFile = zipfile.ZipFile

    def spy(file, mode="r", *args, **kwargs):
        modes.append(mode)
        return realZipFile(file, mode, *args, **kwargs)

    monkeypatch.setattr("modloader.mods.sources.zipfile.ZipFile", spy)
    before = zipPath.stat().st_mtime_ns

    assert ArchiveSource().load(zipPath) is not None
    assert modes == ["r"]
    assert zipPath.stat().st_mtime_ns == before


def test_archive_with_backslash_entries(mods_root):
    write_mod_zip(mods_root, "Win.zip", {
        "Metadata.xml": metadata_xml("Win"),
        "Assets\\maps\\level.bin": b"lvl",
    })
    bundle = ArchiveSource().load(mods_root / "Win.zip")
    assert dict(bundle.assets) == {"maps/level.bin": b"lvl"}


def test_candidates(mods_root):
    write_mod_dir(mods_root, "beta", {"Metadata.xml": metadata_xml("beta")})
    write_mod_dir(mods_root, "Alpha", {"Metadata.xml": metadata_xml("Alpha")})
    write_mod_dir(mods_root, ".hidden", {"Metadata.xml": metadata_xml("hidden")})
    write_mod_zip(mods_root, "Zed.ZIP", {"Metadata.xml": metadata_xml("Zed")})
    write_mod_zip(mods_root, "apple.zip", {"Metadata.xml": metadata_xml("apple")})
    (mods_root / "notes.txt").write_text("ignored")

    assert DirectorySource().candidates(mods_root) == ["Alpha", "beta"]
    assert ArchiveSource().candidates(mods_root) == ["apple.zip", "Zed.ZIP"]
    assert DirectorySource().candidates(mods_root / "missing") == []
