# modloader/core/hashing.py
from __future__ import annotations

import hashlib
from collections.abc import Iterable

__all__ = ["sha256OfFields"]



def sha256OfFields(rows: Iterable[Iterable[str]]) -> str:
    """
    Returns a SHA-256 hex digest of an ordered sequence of string tuples.

    Fields and rows are length-prefixed so ("ab", "c") and ("a", "bc") differ.
    """
    sha = hashlib.sha256()
    for row in rows:
        fields = list(row)
        sha.update(f"{len(fields)}|".encode("utf-8"))
        for field in fields:
            data = str(field).encode("utf-8")
            sha.update(f"{len(data)}:".encode("utf-8"))
            sha.update(data)
    return sha.hexdigest()
