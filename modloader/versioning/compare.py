# modloader/versioning/compare.py
from __future__ import annotations

import re
from enum import Enum

__all__ = [
    "VersionOrder",
    "tokenizeVersion",
    "compareVersions",
    "compareVersionsOrder",
    "isAtLeast",
]



# Maximal runs of ASCII digits or maximal runs of anything else.
_TOKEN_RE = re.compile(r"[0-9]+|[^0-9]+")



class VersionOrder(Enum):
    GREATER = 1
    LESS = -1
    EQUAL = 0



def tokenizeVersion(raw: str) -> list[str]:
    """
    Splits a free-form version string into alternating digit / non-digit runs.

        "1.10.0-rc2" -> ["1", ".", "10", ".", "0", "-rc", "2"]
        ""           -> [""]
    """
    if not isinstance(raw, str):
        raise TypeError(f"Version must be a string, got {type(raw).__name__}")
    return _TOKEN_RE.findall(raw) or [""]



def _asInt(token: str) -> int | None:
    if not token.isdigit():
        return None
    try:
        return int(token)
    except ValueError:
        return None



def compareVersions(first: str, second: str) -> int:
    """
    Compares two version strings token by token.

    Returns 1 if `first` is newer, -1 if it is older and 0 if both are equal.

    Digit runs are compared numerically ("1.9" < "1.10"), everything else as
    plain strings. When one token sequence is a prefix of the other, the longer
    one is newer ("1.2" < "1.2.1").
    """
    tokensFirst = tokenizeVersion(first)
    tokensSecond = tokenizeVersion(second)

    for tokenFirst, tokenSecond in zip(tokensFirst, tokensSecond):
        intFirst = _asInt(tokenFirst)
        intSecond = _asInt(tokenSecond)
        if intFirst is not None and intSecond is not None:
            if intFirst != intSecond:
                return 1 if intFirst > intSecond else -1
            continue
        if tokenFirst != tokenSecond:
            return 1 if tokenFirst > tokenSecond else -1

    if len(tokensFirst) != len(tokensSecond):
        return 1 if len(tokensFirst) > len(tokensSecond) else -1
    return 0



def compareVersionsOrder(first: str, second: str) -> VersionOrder:
    return VersionOrder(compareVersions(first, second))



def isAtLeast(version: str, minimum: str) -> bool:
    """True when `version` is equal to or newer than `minimum`."""
    return compareVersions(version, minimum) >= 0
