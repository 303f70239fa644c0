"""
Schema-validated positional table parser.

Every tabular source (the listing CSV and the HTML tables) is described by a
:class:`TableLayout`: the literal header labels expected at each position and
an ordered list of field roles. The parser

1. validates the header column by column before looking at any data row
   (a mismatch raises :class:`SchemaDriftError`),
2. walks each data row consuming one role per cell (``skip`` roles consume a
   cell without reading it, a ``terminal`` role ends the row),
3. cleans and converts the cell text according to the role kind,
4. skips and counts rows that did not consume every role (partial rows),
5. raises :class:`MalformedRowError` on a conversion failure for strict
   layouts, or skips and counts the row for lenient ones.

Cells are opaque to the parser; callers supply ``text_of`` to read a cell
(identity for CSV, :func:`mxm_bondscreen.common.html.cell_text` for HTML).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Generic, Iterable, Optional, Sequence, TypeVar

from mxm_bondscreen.common.errors import MalformedRowError, SchemaDriftError

logger = logging.getLogger(__name__)

C = TypeVar("C")

DATE_FORMATS: tuple[str, ...] = ("%Y-%m-%d", "%d.%m.%Y")


class FieldKind(str, Enum):
    TEXT = "text"
    FLOAT = "float"
    UINT = "uint"
    DATE = "date"
    SKIP = "skip"
    TERMINAL = "terminal"


@dataclass(frozen=True)
class Field:
    """One positional role in a row."""

    name: str
    kind: FieldKind = FieldKind.TEXT

    @classmethod
    def skip(cls) -> "Field":
        return cls("", FieldKind.SKIP)

    @classmethod
    def terminal(cls) -> "Field":
        return cls("", FieldKind.TERMINAL)


@dataclass(frozen=True)
class TableLayout:
    """Expected header (``""`` = any label) and field roles of one source."""

    source: str
    expected_header: tuple[str, ...]
    fields: tuple[Field, ...]
    strict: bool = False

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(
            f.name for f in self.fields if f.kind not in (FieldKind.SKIP, FieldKind.TERMINAL)
        )


@dataclass
class ParsedRow(Generic[C]):
    """Converted values by field name plus the raw cell each came from."""

    values: dict[str, Any] = field(default_factory=dict)
    cells: dict[str, C] = field(default_factory=dict)


@dataclass(frozen=True)
class ParseStats:
    accepted: int = 0
    skipped: int = 0


# ---------- Cleanup / conversion ----------


def clean_number(text: str) -> str:
    """Drop all whitespace and ``%``, map a decimal comma to a dot."""
    return "".join(text.split()).replace("%", "").replace(",", ".")


def parse_date(text: str) -> date:
    """Parse ``YYYY-MM-DD`` or ``DD.MM.YYYY``; raise ``ValueError`` otherwise."""
    value = text.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"unrecognised date {text!r}")


def convert_cell(kind: FieldKind, text: str) -> Any:
    """Convert one cleaned cell; raises ``ValueError`` on bad input."""
    if kind is FieldKind.TEXT:
        return text.strip()
    if kind is FieldKind.FLOAT:
        return float(clean_number(text))
    if kind is FieldKind.UINT:
        value = int(clean_number(text))
        if value < 0:
            raise ValueError(f"negative count {text!r}")
        return value
    if kind is FieldKind.DATE:
        return parse_date(text)
    raise ValueError(f"field kind {kind.value} carries no value")


# ---------- Header / rows ----------


def check_header(
    layout: TableLayout, cells: Sequence[C], text_of: Callable[[C], str]
) -> None:
    """Validate ``cells`` against ``layout.expected_header``."""
    expected = layout.expected_header
    if len(cells) < len(expected):
        raise SchemaDriftError(
            layout.source,
            f"header has {len(cells)} columns, expected at least {len(expected)}",
        )
    for pos, label in enumerate(expected, start=1):
        if label == "":
            continue
        actual = text_of(cells[pos - 1]).strip()
        if actual != label:
            raise SchemaDriftError.header_mismatch(layout.source, pos, label, actual)


def parse_row(
    layout: TableLayout, cells: Sequence[C], text_of: Callable[[C], str]
) -> Optional[ParsedRow[C]]:
    """
    Convert one data row. Returns ``None`` for a partial row.

    Raises :class:`MalformedRowError` when a cell cannot be converted; the
    caller decides whether that is fatal.
    """
    total = len(layout.fields)
    consumed = 0
    row: ParsedRow[C] = ParsedRow()

    for cell in cells:
        if consumed == total:
            break
        role = layout.fields[consumed]
        consumed += 1

        if role.kind is FieldKind.SKIP:
            continue
        if role.kind is FieldKind.TERMINAL:
            consumed = total
            break

        text = text_of(cell)
        if not text.strip():
            continue
        try:
            row.values[role.name] = convert_cell(role.kind, text)
        except ValueError as exc:
            raise MalformedRowError(layout.source, role.name, text) from exc
        row.cells[role.name] = cell

    if consumed != total:
        return None
    return row


def parse_rows(
    layout: TableLayout,
    rows: Iterable[Sequence[C]],
    text_of: Callable[[C], str],
) -> tuple[list[ParsedRow[C]], ParseStats]:
    """Parse data rows (header already checked) and count accepted/skipped."""
    out: list[ParsedRow[C]] = []
    skipped = 0
    for cells in rows:
        try:
            parsed = parse_row(layout, cells, text_of)
        except MalformedRowError as exc:
            if layout.strict:
                raise
            logger.debug("%s: skip malformed row (%s)", layout.source, exc)
            skipped += 1
            continue
        if parsed is None:
            logger.debug("%s: skip partial row", layout.source)
            skipped += 1
            continue
        out.append(parsed)
    return out, ParseStats(accepted=len(out), skipped=skipped)


def parse_table(
    layout: TableLayout,
    header: Sequence[C],
    rows: Iterable[Sequence[C]],
    text_of: Callable[[C], str],
) -> tuple[list[ParsedRow[C]], ParseStats]:
    """Check the header, then parse every data row."""
    check_header(layout, header, text_of)
    return parse_rows(layout, rows, text_of)


def identity(cell: str) -> str:
    return cell
