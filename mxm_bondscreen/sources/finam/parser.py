"""
HTML parser for finam daily bond trade statistics.

Two trading modes are published per day, each on its own page with its own
column layout:

- ``T0`` (``resultsType=1``): name, bid, ask, -, securities, volume,
  transactions, ...
- ``T+`` (``resultsType=5``): -, name, bid, ask, -, securities, volume,
  transactions, ...

The header row is located by a fixed element path ending in ``th``; data
rows live in the row container that follows the header's container. Rows
are keyed by the normalized short name. Numbers that do not parse mean the
page format changed and abort the parse.

Pages of the same day and of consecutive days are combined with
:func:`merge_statistics`: the first page a name appears on provides its
descriptive fields (name, bid, ask), liquidity counters are summed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterable, Mapping

from mxm_bondscreen.bonds.normalize import normalize_short_name
from mxm_bondscreen.common.errors import SchemaDriftError
from mxm_bondscreen.common.html import (
    cell_text,
    element_children,
    next_element_sibling,
    node_by_table_path,
    parse_html,
)
from mxm_bondscreen.common.tabular import (
    Field,
    FieldKind,
    ParseStats,
    TableLayout,
    parse_table,
)

logger = logging.getLogger(__name__)

SOURCE = "finam"

# fmt: off
HEADER_PATH: tuple[str, ...] = (
    "html", "body", "div", "div", "div",
    "table", "tbody", "tr", "td", "div",
    "table", "tbody", "tr", "th",
)
# fmt: on

NAME = "name"
BID = "bid"
ASK = "ask"
SECURITIES = "securities_count"
VOLUME = "trade_volume"
TRANSACTIONS = "transactions_count"

_TRADE_FIELDS: tuple[Field, ...] = (
    Field(NAME, FieldKind.TEXT),
    Field(BID, FieldKind.FLOAT),
    Field(ASK, FieldKind.FLOAT),
    Field.skip(),
    Field(SECURITIES, FieldKind.UINT),
    Field(VOLUME, FieldKind.FLOAT),
    Field(TRANSACTIONS, FieldKind.UINT),
    Field.terminal(),
)


@dataclass(frozen=True)
class TradingMode:
    code: str
    results_type: int
    layout: TableLayout


def _mode(code: str, results_type: int, fields: tuple[Field, ...]) -> TradingMode:
    # Column labels vary between page revisions; only the column count is pinned.
    return TradingMode(
        code=code,
        results_type=results_type,
        layout=TableLayout(
            source=f"{SOURCE}/{code}",
            expected_header=("",) * len(fields),
            fields=fields,
            strict=True,
        ),
    )


MODE_T0 = _mode("T0", 1, _TRADE_FIELDS)
MODE_TPLUS = _mode("T+", 5, (Field.skip(),) + _TRADE_FIELDS)
TRADING_MODES: tuple[TradingMode, ...] = (MODE_T0, MODE_TPLUS)


@dataclass(frozen=True)
class StatisticsEntry:
    name: str
    bid: float = 0.0
    ask: float = 0.0
    securities_count: int = 0
    transactions_count: int = 0
    trade_volume: float = 0.0


def parse_statistics_page(
    html: str, mode: TradingMode
) -> tuple[dict[str, StatisticsEntry], ParseStats]:
    """Parse one statistics page into ``{normalized name: entry}`` plus row counts."""
    source = mode.layout.source
    soup = parse_html(html)

    th = node_by_table_path(soup, HEADER_PATH)
    if th is None or th.parent is None:
        raise SchemaDriftError(source, "result table was not found")
    header_row = th.parent
    container = header_row.parent
    body = next_element_sibling(container) if container is not None else None
    if body is None:
        raise SchemaDriftError(source, "result rows were not found")

    rows = [
        list(element_children(tr)) for tr in element_children(body) if tr.name == "tr"
    ]
    parsed, stats = parse_table(
        mode.layout, list(element_children(header_row)), rows, cell_text
    )

    out: dict[str, StatisticsEntry] = {}
    for row in parsed:
        v = row.values
        name = v.get(NAME, "")
        if not name:
            continue
        out[normalize_short_name(name)] = StatisticsEntry(
            name=name,
            bid=v.get(BID, 0.0),
            ask=v.get(ASK, 0.0),
            securities_count=v.get(SECURITIES, 0),
            transactions_count=v.get(TRANSACTIONS, 0),
            trade_volume=v.get(VOLUME, 0.0),
        )

    logger.debug("%s: %d found, %d skipped", source, stats.accepted, stats.skipped)
    return out, stats


def merge_statistics(
    pages: Iterable[Mapping[str, StatisticsEntry]],
) -> dict[str, StatisticsEntry]:
    """First-seen wins for descriptive fields; liquidity counters are summed."""
    result: dict[str, StatisticsEntry] = {}
    for page in pages:
        for key, entry in page.items():
            seen = result.get(key)
            if seen is None:
                result[key] = entry
                continue
            result[key] = replace(
                seen,
                securities_count=seen.securities_count + entry.securities_count,
                transactions_count=seen.transactions_count + entry.transactions_count,
                trade_volume=seen.trade_volume + entry.trade_volume,
            )
    return result

