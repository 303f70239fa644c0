"""Canonical form of bond short names used as the statistics join key."""

from __future__ import annotations

__all__ = ["normalize_short_name"]

_DROPPED = frozenset("-/.")


def normalize_short_name(name: str) -> str:
    """
    Remove whitespace, ``-``, ``/`` and ``.``; upper-case everything else.

    ``"ОФЗ 26207"``, ``"офз-26207"`` and ``"ОФЗ26207"`` all map to
    ``"ОФЗ26207"``. The function is total and idempotent.
    """
    return "".join(
        ch.upper() for ch in name if not ch.isspace() and ch not in _DROPPED
    )
