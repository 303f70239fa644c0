"""
Plain-text list files: blacklists and emitent comments.

Both formats are line based; blank lines and lines starting with ``#`` are
ignored.

- Blacklist: one substring pattern per line.
- Comments: ``<emitent title> -> <comment>`` per line.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional

COMMENT_SEPARATOR = " -> "

__all__ = [
    "significant_lines",
    "load_patterns_from_text",
    "load_patterns",
    "load_comments_from_text",
    "load_comments",
]


def significant_lines(text: str) -> list[str]:
    return [
        ln.strip() for ln in text.splitlines() if ln.strip() and not ln.startswith("#")
    ]


def load_patterns_from_text(text: str) -> list[str]:
    """Parse blacklist patterns from a string (useful for overrides/tests)."""
    return significant_lines(text)


def load_patterns(paths: Iterable[str | Path] | None) -> list[str]:
    """Concatenate patterns of every configured file; a missing file is an error."""
    out: list[str] = []
    for p in paths or ():
        out.extend(load_patterns_from_text(Path(p).read_text(encoding="utf-8")))
    return out


def load_comments_from_text(text: str) -> dict[str, str]:
    comments: dict[str, str] = {}
    for line in significant_lines(text):
        parts = line.split(COMMENT_SEPARATOR)
        if len(parts) != 2:
            raise ValueError(
                f"bad comment format {line!r} (expected: '<emitent> -> <comment>')"
            )
        comments[parts[0].strip()] = parts[1].strip()
    return comments


def load_comments(path: Optional[str | Path]) -> dict[str, str]:
    if not path:
        return {}
    return load_comments_from_text(Path(path).read_text(encoding="utf-8"))
