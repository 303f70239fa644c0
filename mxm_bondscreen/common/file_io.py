"""
Lightweight file I/O helpers.

- All files are read/written as UTF-8.
- `write_json` pretty-prints with 2-space indentation and does not escape non-ASCII.
- Parent directories are created as needed.
- Functions surface underlying I/O and JSON errors (no silent swallowing).

`JSONLike` is a recursive alias for any value the `json` module can round-trip
(dicts with string keys, lists, str, int, float, bool, None).
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TypeAlias, cast

JSONScalar: TypeAlias = str | int | float | bool | None
JSONLike: TypeAlias = JSONScalar | list["JSONLike"] | dict[str, "JSONLike"]

__all__ = ["JSONScalar", "JSONLike", "write_json", "read_json", "write_text"]


def write_json(path: Path, data: JSONLike) -> Path:
    """Write JSON to disk, creating parent dirs as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    text = json.dumps(data, ensure_ascii=False, indent=2)
    path.write_text(text, encoding="utf-8", newline="\n")
    return path


def read_json(path: Path) -> JSONLike:
    """Read JSON from disk."""
    return cast(JSONLike, json.loads(path.read_text(encoding="utf-8")))


def write_text(path: Path, text: str) -> Path:
    """Write a UTF-8 text file, creating parent dirs as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8", newline="\n")
    return path
