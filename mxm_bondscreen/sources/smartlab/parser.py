"""
HTML parser for smart-lab bond tables.

The first row of the table body is the header and is validated against the
layout of the requested bond type. Every following row yields a base
:class:`BondRecord` with short name, ISIN, maturity date, optional offer
date, accrued interest and clean-price percent.

The ISIN is read from the link around the bond name
(``<a href="/q/bonds/<ISIN>/">``); a name cell without such a link means the
page structure changed and is fatal. Rows with unparsable numbers, without
a maturity date or without a positive price are placeholders and are
skipped.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import Optional

from bs4 import Tag

from mxm_bondscreen.bonds.model import BondRecord, BondType
from mxm_bondscreen.common.errors import SchemaDriftError
from mxm_bondscreen.common.html import (
    cell_text,
    element_children,
    first_text_node,
    node_by_table_path,
    parse_html,
)
from mxm_bondscreen.common.tabular import ParseStats, parse_date, parse_table
from mxm_bondscreen.sources.smartlab.layouts import (
    ACCRUED,
    CLEAN_PERCENT,
    MATURITY,
    NAME,
    OFFER,
    MarketTableLayout,
    layout_for,
)

logger = logging.getLogger(__name__)

ISIN_HREF = re.compile(r"^/q/bonds/([A-Za-z0-9]+)/?$")


@dataclass(frozen=True)
class MarketTableResult:
    bond_type: BondType
    bonds: list[BondRecord]
    stats: ParseStats


def extract_isin(name_cell: Tag, source: str) -> str:
    """ISIN from the ``/q/bonds/<ISIN>/`` link wrapping the bond name."""
    text = first_text_node(name_cell)
    anchor = text.parent if text is not None else None
    if anchor is None or anchor.name != "a":
        raise SchemaDriftError(source, "bond name is not wrapped in a link")
    href = anchor.get("href")
    if not isinstance(href, str):
        raise SchemaDriftError(source, "bond link has no href")
    match = ISIN_HREF.match(href.strip())
    if match is None:
        raise SchemaDriftError(source, f"unknown bond link {href!r}")
    return match.group(1)


def _offer_date(text: Optional[str]) -> Optional[date]:
    if not text:
        return None
    try:
        return parse_date(text)
    except ValueError:
        return None


def parse_market_table(
    html: str,
    bond_type: BondType,
    layout: Optional[MarketTableLayout] = None,
) -> MarketTableResult:
    """Parse one market-table page into base bond records."""
    layout = layout or layout_for(bond_type)
    source = layout.table.source

    soup = parse_html(html)
    tbody = node_by_table_path(soup, layout.table_path)
    if tbody is None:
        raise SchemaDriftError(source, "bond table not found")

    rows = [
        list(element_children(tr)) for tr in element_children(tbody) if tr.name == "tr"
    ]
    if not rows:
        raise SchemaDriftError(source, "bond table is empty")

    parsed, stats = parse_table(layout.table, rows[0], rows[1:], cell_text)

    bonds: list[BondRecord] = []
    skipped = stats.skipped
    for row in parsed:
        v = row.values
        if MATURITY not in v or NAME not in v or v.get(CLEAN_PERCENT, 0.0) <= 0.0:
            skipped += 1
            continue
        bonds.append(
            BondRecord(
                type=bond_type,
                isin=extract_isin(row.cells[NAME], source),
                short_name=v[NAME],
                maturity_date=v[MATURITY],
                offer_date=_offer_date(v.get(OFFER)),
                accrued_interest=v.get(ACCRUED, 0.0),
                clean_price_percent=v.get(CLEAN_PERCENT, 0.0),
            )
        )

    stats = ParseStats(accepted=len(bonds), skipped=skipped)
    logger.info(
        "%s: %d bonds found, %d skipped", source, stats.accepted, stats.skipped
    )
    return MarketTableResult(bond_type=bond_type, bonds=bonds, stats=stats)
