# modloader/mods/constants.py
from __future__ import annotations

__all__ = [
    "HOST_LOADER_ID", "METADATA_FILE_NAMES", "ASSETS_DIRECTORY_NAME",
    "LIBRARY_EXTENSION", "ARCHIVE_EXTENSION", "GAME_COMPONENT",
    "COMPONENTS_EXPORT",
]



# Reserved dependency name that refers to the loader itself, not to another mod.
HOST_LOADER_ID = "HAT"

# Descriptor names looked up (case-insensitively) at the top level of a mod, in priority order.
METADATA_FILE_NAMES = ("Metadata.xml", "Metadata.json5", "Metadata.json")
ASSETS_DIRECTORY_NAME = "Assets"

# Executable module bundled with a code mod, and the extension of archive-based mods.
LIBRARY_EXTENSION = ".py"
ARCHIVE_EXTENSION = ".zip"

# Plugin contract of a mod library: COMPONENTS = [(GAME_COMPONENT, factory), ...]
COMPONENTS_EXPORT = "COMPONENTS"
GAME_COMPONENT = "gameComponent"
