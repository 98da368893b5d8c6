# tests/modloader/app/test_settings.py
from pathlib import Path

import pytest
from pydantic import ValidationError

from modloader.app.settings import DEFAULT_SETTINGS, LoaderConfig, deepMerge, loadConfig
from modloader.core.errors import ConfigError
from modloader.mods.constants import METADATA_FILE_NAMES


def write_settings(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "loader.json5"
    path.write_text(text, encoding="utf-8")
    return path


def test_defaults_with_overrides_only(tmp_path):
    config = loadConfig(modsDirectory=tmp_path, hostVersion="1.0")

    assert config.modsDirectory == tmp_path
    assert config.hostVersion == "1.0"
    assert config.hostLoaderId == "HAT"
    assert config.metadataFileNames == METADATA_FILE_NAMES
    assert config.assetsDirectoryName == "Assets"
    assert config.libraryExtension == ".py"
    assert config.archiveExtension == ".zip"
    assert config.cycleDetection == "direct"
    assert config.logging.devMode is True


def test_json5_file_is_merged(tmp_path):
    path = write_settings(tmp_path, """
    {
        // where the mods live, relative to this file
        modsDirectory: "Mods",
        hostVersion: "1.5",
        cycleDetection: "full",
        logging: { devMode: false, traceEnabled: true },
    }
    """)

    config = loadConfig(path)

    assert config.modsDirectory == (tmp_path / "Mods").resolve()
    assert config.hostVersion == "1.5"
    assert config.cycleDetection == "full"
    assert config.logging.devMode is False
    assert config.logging.traceEnabled is True
    # Untouched nested defaults survive the merge
    assert config.logging.jsonConsole is False


def test_absolute_mods_directory_is_kept(tmp_path):
    target = tmp_path / "elsewhere"
    path = write_settings(tmp_path, f'{{"modsDirectory": "{target.as_posix()}", "hostVersion": "1"}}')
    assert loadConfig(path).modsDirectory == target


def test_overrides_win_over_file(tmp_path):
    path = write_settings(tmp_path, '{modsDirectory: "Mods", hostVersion: "1.5"}')

    config = loadConfig(path, hostVersion="2.0", libraryExtension="lua", cycleDetection=None)

    assert config.hostVersion == "2.0"
    assert config.libraryExtension == ".lua"
    assert config.cycleDetection == "direct"


@pytest.mark.parametrize(
    "text",
    [
        '{modsDirectory: "Mods"}',
        '{modsDirectory: "Mods", hostVersion: "1", unknownKey: 1}',
        '{modsDirectory: "Mods", hostVersion: "1", cycleDetection: "sometimes"}',
        '{modsDirectory: "Mods", hostVersion: "1", metadataFileNames: []}',
        '{modsDirectory: "Mods", hostVersion: "  "}',
        '{modsDirectory: "Mods", hostVersion: "1", archiveExtension: "."}',
        '["not", "an", "object"]',
        '{this is not json5',
    ],
)
def test_invalid_settings_raise_config_error(tmp_path, text):
    with pytest.raises(ConfigError):
        loadConfig(write_settings(tmp_path, text))


def test_missing_settings_file(tmp_path):
    with pytest.raises(ConfigError):
        loadConfig(tmp_path / "missing.json5")


def test_defaults_are_not_mutated(tmp_path):
    before = {key: value for key, value in DEFAULT_SETTINGS.items()}
    loadConfig(modsDirectory=tmp_path, hostVersion="1", logging={"devMode": False})
    assert DEFAULT_SETTINGS == before


def test_loader_config_is_frozen(tmp_path):
    config = LoaderConfig(modsDirectory=tmp_path, hostVersion="1")
    with pytest.raises(ValidationError):
        config.hostVersion = "2"  # type: ignore[misc]


def test_deep_merge():
    left = {"a": 1, "nested": {"x": 1, "y": [1, 2]}, "keep": True}
    right = {"a": 2, "nested": {"y": [3], "z": None}, "new": "v"}

    merged = deepMerge(left, right)

    assert merged == {"a": 2, "nested": {"x": 1, "y": [3], "z": None}, "keep": True, "new": "v"}
    assert left == {"a": 1, "nested": {"x": 1, "y": [1, 2]}, "keep": True}
    assert deepMerge({"a": 1}, [1]) == [1]
