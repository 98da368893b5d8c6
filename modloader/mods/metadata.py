# modloader/mods/metadata.py
from __future__ import annotations
import xml.etree.ElementTree as ET
from collections.abc import Mapping
from typing import Any

import json5
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from modloader.core.hashing import sha256OfFields

__all__ = [
    "DependencyDeclaration",
    "PackageMetadata",
    "MetadataParseError",
    "parseMetadata",
    "parseMetadataXml",
    "parseMetadataJson",
]



class MetadataParseError(ValueError):
    """Descriptor bytes could not be turned into a valid PackageMetadata."""
    pass



class DependencyDeclaration(BaseModel):
    """A static "needs <name> at version >= <minimumVersion>" requirement."""
    model_config = ConfigDict(extra="forbid", frozen=True, coerce_numbers_to_str=True)

    name: str
    minimumVersion: str = ""

    @field_validator("name")
    @classmethod
    def _nameRequired(cls, value: str) -> str:
        if not value:
            raise ValueError("dependency name is required")
        return value

    def isHostLoader(self, hostLoaderId: str) -> bool:
        return self.name == hostLoaderId



class PackageMetadata(BaseModel):
    """Represents a validated mod descriptor."""
    model_config = ConfigDict(extra="forbid", frozen=True, coerce_numbers_to_str=True)

    name: str
    description: str = ""
    author: str = ""
    version: str
    libraryName: str | None = None
    dependencies: tuple[DependencyDeclaration, ...] = Field(default_factory=tuple)

    @field_validator("name", "version")
    @classmethod
    def _required(cls, value: str) -> str:
        if not value:
            raise ValueError("must be a non-empty string")
        return value

    @field_validator("libraryName")
    @classmethod
    def _emptyLibraryIsNone(cls, value: str | None) -> str | None:
        return value or None

    @property
    def dependencyKey(self) -> str:
        """Content-derived marker of the declared dependency list."""
        return sha256OfFields((dep.name, dep.minimumVersion) for dep in self.dependencies)

    def declaresDependencyOn(self, name: str) -> bool:
        return any(dep.name == name for dep in self.dependencies)

    def declaresLibrary(self, extension: str) -> bool:
        return bool(self.libraryName) and self.libraryName.lower().endswith(extension.lower())



# ------------------------------------------------
#                    Parsers
# ------------------------------------------------

# Element name -> model field
_XML_FIELDS = {
    "Name": "name",
    "Description": "description",
    "Author": "author",
    "Version": "version",
    "LibraryName": "libraryName",
}

# Keys accepted in json descriptors, matched case-insensitively.
_JSON_FIELDS = {
    "name": "name",
    "description": "description",
    "author": "author",
    "version": "version",
    "libraryname": "libraryName",
    "dependencies": "dependencies",
}
_JSON_DEP_FIELDS = {
    "name": "name",
    "minimumversion": "minimumVersion",
}



def _validate(raw: Mapping[str, Any], source: str) -> PackageMetadata:
    try:
        return PackageMetadata.model_validate(raw)
    except ValidationError as err:
        raise MetadataParseError(f"Invalid metadata in {source}: {err}") from err



def parseMetadataXml(data: bytes, *, source: str = "<xml>") -> PackageMetadata:
    """
    Parses an XML descriptor:

        <Metadata>
          <Name>MyMod</Name>
          <Version>1.2</Version>
          <LibraryName>MyMod.py</LibraryName>
          <Dependencies>
            <DependencyInfo Name="HAT" MinimumVersion="1.0" />
          </Dependencies>
        </Metadata>

    Element names are case-sensitive; unknown elements are ignored.
    """
    try:
        root = ET.fromstring(data)
    except ET.ParseError as err:
        raise MetadataParseError(f"Malformed XML in {source}: {err}") from err

    if root.tag != "Metadata":
        raise MetadataParseError(f"Expected <Metadata> root in {source}, got <{root.tag}>")

    raw: dict[str, Any] = {}
    for child in root:
        fieldName = _XML_FIELDS.get(child.tag)
        if fieldName is not None:
            raw[fieldName] = (child.text or "").strip()

    dependencies: list[dict[str, str]] = []
    depsElement = root.find("Dependencies")
    if depsElement is not None:
        for depElement in depsElement.findall("DependencyInfo"):
            dependencies.append({
                "name": depElement.get("Name", ""),
                "minimumVersion": depElement.get("MinimumVersion", ""),
            })
    raw["dependencies"] = dependencies

    return _validate(raw, source)



def _pickKeys(raw: Mapping[str, Any], mapping: Mapping[str, str]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, value in raw.items():
        fieldName = mapping.get(str(key).lower())
        if fieldName is not None:
            out[fieldName] = value
    return out



def parseMetadataJson(data: bytes, *, source: str = "<json>") -> PackageMetadata:
    """
    Parses a json5 descriptor with the same fields as the XML form. Keys are
    matched case-insensitively ("Name" and "name" are both accepted).
    """
    try:
        raw = json5.loads(data.decode("utf-8-sig"))
    except (UnicodeDecodeError, ValueError) as err:
        raise MetadataParseError(f"Malformed json5 in {source}: {err}") from err

    if not isinstance(raw, Mapping):
        raise MetadataParseError(f"Expected an object in {source}, got {type(raw).__name__}")

    fields = _pickKeys(raw, _JSON_FIELDS)
    deps = fields.get("dependencies")
    if deps is None:
        fields["dependencies"] = []
    elif isinstance(deps, list):
        fields["dependencies"] = [
            _pickKeys(dep, _JSON_DEP_FIELDS) if isinstance(dep, Mapping) else dep
            for dep in deps
        ]
    return _validate(fields, source)



def parseMetadata(fileName: str, data: bytes) -> PackageMetadata:
    """Dispatches on the descriptor's extension."""
    if fileName.lower().endswith(".xml"):
        return parseMetadataXml(data, source=fileName)
    return parseMetadataJson(data, source=fileName)
