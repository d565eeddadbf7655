"""Centralized JSON serialization.

Two forms are used:
- compact_dumps: record lines in shard files. Key order is the caller's
  (wire field order), so lines stay byte-stable across rewrites.
- canonical_dumps: reports written by the CLI. Keys sorted.

Both use compact separators and keep non-ASCII characters unescaped.
"""

import json
from typing import Any


def compact_dumps(obj: Any) -> str:
    """
    Serialize a record line.

    Rules:
    - Key order preserved (no sorting)
    - Separators (",", ":")
    - UTF-8, no ASCII escaping
    - No trailing newline
    """
    return json.dumps(
        obj,
        separators=(",", ":"),
        ensure_ascii=False
    )


def canonical_dumps(obj: Any) -> str:
    """
    Canonical JSON serialization for byte-stable reports.

    Args:
        obj: Python object to serialize

    Returns:
        JSON string with sorted keys and stable separators
    """
    return json.dumps(
        obj,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False
    )
