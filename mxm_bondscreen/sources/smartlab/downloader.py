"""Downloader for smart-lab market tables."""

from __future__ import annotations

from mxm_bondscreen.bonds.model import BondType
from mxm_bondscreen.common.http_adapter import Fetcher
from mxm_bondscreen.sources.smartlab.layouts import layout_for
from mxm_bondscreen.sources.smartlab.parser import (
    MarketTableResult,
    parse_market_table,
)


def download_market_table(fetcher: Fetcher, bond_type: BondType) -> MarketTableResult:
    """Fetch the page for ``bond_type`` and parse it into base bond records."""
    layout = layout_for(bond_type)
    html = fetcher.fetch_text(layout.url, headers={"Accept": "text/html"})
    return parse_market_table(html, bond_type, layout)
