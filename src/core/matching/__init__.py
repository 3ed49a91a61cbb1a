"""
Matching module - path pattern matching for archive entries.

Usage:
    from core.matching import compile_path_pattern
"""
from __future__ import annotations

from .path_pattern import PathPattern, compile_path_pattern, wildcard_to_regex

__all__ = [
    "PathPattern",
    "compile_path_pattern",
    "wildcard_to_regex",
]
