"""
Wildcard patterns over archive entry paths.

Patterns use forward-slash separated components with two wildcards:

- ``*`` any run of characters within one path component (possibly empty)
- ``?`` exactly one character within one path component

Everything else, including ``/`` and ``.``, matches literally, and a
pattern only matches a whole path (no substring hits).

Examples:
    >>> pattern = compile_path_pattern("a/*/b.ktx")
    >>> pattern.matches("a/x/b.ktx")
    True
    >>> pattern.matches("a/x/y/b.ktx")
    False
    >>> pattern.matches("a//b.ktx")
    True
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache

__all__ = ["PathPattern", "compile_path_pattern", "wildcard_to_regex"]

_ANY_RUN = "[^/]*"
_ANY_CHAR = "[^/]"


@dataclass(frozen=True, slots=True)
class PathPattern:
    """A compiled, anchored wildcard pattern."""

    pattern: str
    regex: re.Pattern

    def matches(self, path: str) -> bool:
        """Return True if ``path`` matches the whole pattern."""
        return self.regex.fullmatch(path) is not None

    def __call__(self, path: str) -> bool:
        return self.matches(path)


def wildcard_to_regex(pattern: str) -> str:
    """
    Translate a wildcard pattern into an anchored regular expression.

    Raises:
        ValueError: If pattern is empty or not a string
    """
    if not isinstance(pattern, str) or not pattern:
        raise ValueError(f"Wildcard pattern must be a non-empty string, got {pattern!r}")

    parts = []
    for char in pattern:
        if char == "*":
            parts.append(_ANY_RUN)
        elif char == "?":
            parts.append(_ANY_CHAR)
        else:
            parts.append(re.escape(char))
    return "^" + "".join(parts) + "$"


@lru_cache(maxsize=64)
def compile_path_pattern(pattern: str) -> PathPattern:
    """Compile a wildcard pattern; invalid patterns fail immediately."""
    return PathPattern(pattern=pattern, regex=re.compile(wildcard_to_regex(pattern)))
