"""
Error taxonomy for mxm-bondscreen.

Fatal conditions are raised as subclasses of :class:`BondScreenError` so that
entry points can catch a single type and report a descriptive message.
Recoverable conditions (partial rows, missing enrichment data) are not
exceptions; they are counted in the per-stage stats dataclasses instead.
"""

from __future__ import annotations

__all__ = [
    "BondScreenError",
    "FetchError",
    "SchemaDriftError",
    "MalformedRowError",
    "DetailPageError",
]


class BondScreenError(RuntimeError):
    """Base class for all fatal pipeline errors."""


class FetchError(BondScreenError):
    """Transport-level failure while retrieving a document."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__(f"fetch failed for {url}: {message}")
        self.url = url


class SchemaDriftError(BondScreenError):
    """The structure of a fetched document no longer matches expectations."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source

    @classmethod
    def header_mismatch(
        cls, source: str, position: int, expected: str, actual: str
    ) -> "SchemaDriftError":
        return cls(
            source,
            f"header mismatch at column {position}: "
            f"expected {expected!r}, got {actual!r}",
        )


class MalformedRowError(BondScreenError):
    """A field in a strict source could not be converted."""

    def __init__(self, source: str, field: str, value: str) -> None:
        super().__init__(f"{source}: cannot parse {field} from {value!r}")
        self.source = source
        self.field = field
        self.value = value


class DetailPageError(BondScreenError):
    """A bond-detail search page has a result table but no usable link."""
