import sys
import zipfile
from pathlib import Path

import pytest



def pytest_configure(config: pytest.Config) -> None:
    if sys.flags.optimize:
        raise RuntimeError("Assertions are disabled (optimize > 0)")



def metadata_xml(name: str, version: str = "1.0", *, library: str | None = None, deps: list[tuple[str, str]] | None = None, author: str = "", description: str = "") -> str:
    parts = [
        "<?xml version=\"1.0\" encoding=\"utf-8\"?>",
        "<Metadata>",
        f"  <Name>{name}</Name>",
        f"  <Description>{description}</Description>",
        f"  <Author>{author}</Author>",
        f"  <Version>{version}</Version>",
    ]
    if library is not None:
        parts.append(f"  <LibraryName>{library}</LibraryName>")
    if deps:
        parts.append("  <Dependencies>")
        for depName, minimum in deps:
            parts.append(f"    <DependencyInfo Name=\"{depName}\" MinimumVersion=\"{minimum}\" />")
        parts.append("  </Dependencies>")
    parts.append("</Metadata>")
    return "\n".join(parts)



def write_mod_dir(root: Path, dirName: str, files: dict[str, bytes | str]) -> Path:
    """Writes `files` (relative POSIX path -> content) under root/dirName."""
    modDir = root / dirName
    modDir.mkdir(parents=True, exist_ok=True)
    for rel, content in files.items():
        path = modDir / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, str):
            content = content.encode("utf-8")
        path.write_bytes(content)
    return modDir



def write_mod_zip(root: Path, zipName: str, files: dict[str, bytes | str]) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    zipPath = root / zipName
    with zipfile.ZipFile(zipPath, "w") as archive:
        for rel, content in files.items():
            if isinstance(content, str):
                content = content.encode("utf-8")
            archive.writestr(rel, content)
    return zipPath



@pytest.fixture()
def mods_root(tmp_path) -> Path:
    root = tmp_path / "Mods"
    root.mkdir()
    return root
