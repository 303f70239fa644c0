from __future__ import annotations

import csv
import io
import threading
from pathlib import Path
from types import SimpleNamespace
from typing import Callable, Mapping, Optional, Sequence

import pytest

from mxm_bondscreen.common.errors import FetchError
from mxm_bondscreen.sources.finam.parser import MODE_TPLUS, TradingMode
from mxm_bondscreen.sources.moex.listing import COLUMNS
from mxm_bondscreen.sources.smartlab.layouts import NAME, MarketTableLayout

DATA_DIR = Path(__file__).parent / "data"


class FakeFetcher:
    """Fetcher double serving canned documents by exact URL."""

    def __init__(self, pages: Mapping[str, str]) -> None:
        self.pages = dict(pages)
        self.requested: list[str] = []
        self.closed = False
        self._lock = threading.Lock()

    def fetch_text(
        self,
        url: str,
        *,
        encoding: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> str:
        with self._lock:
            self.requested.append(url)
        if url not in self.pages:
            raise FetchError(url, "404 Not Found")
        return self.pages[url]

    def close(self) -> None:
        self.closed = True


class FakeFetcherFactory:
    """Factory handing out fetchers that share one page map and one request log."""

    def __init__(self, pages: Mapping[str, str]) -> None:
        self.pages = dict(pages)
        self.created: list[FakeFetcher] = []

    def __call__(self) -> FakeFetcher:
        fetcher = FakeFetcher(self.pages)
        self.created.append(fetcher)
        return fetcher

    @property
    def requested(self) -> list[str]:
        return [url for f in self.created for url in f.requested]


@pytest.fixture
def data_dir() -> Path:
    return DATA_DIR


@pytest.fixture
def read_data() -> Callable[[str], str]:
    def _read(name: str) -> str:
        return (DATA_DIR / name).read_text(encoding="utf-8")

    return _read


@pytest.fixture
def fake_fetcher() -> Callable[[Mapping[str, str]], FakeFetcher]:
    return FakeFetcher


@pytest.fixture
def fake_factory() -> Callable[[Mapping[str, str]], FakeFetcherFactory]:
    return FakeFetcherFactory


# ---------- page builders -----------------------------------------------------


def build_listing_csv(rows: Sequence[Mapping[str, str]]) -> str:
    """Listing CSV with the full 39-column header; missing cells are empty."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\r\n")
    writer.writerow(COLUMNS)
    for row in rows:
        unknown = set(row) - set(COLUMNS)
        assert not unknown, f"unknown listing columns {unknown}"
        writer.writerow([row.get(col, "") for col in COLUMNS])
    return buf.getvalue()


def listing_row(
    isin: str,
    trade_code: str,
    name: str,
    *,
    nominal: str = "1000",
    coupon: str = "8,00%",
    currency: str = "Рубль",
    **extra: str,
) -> dict[str, str]:
    row = {
        "SUPERTYPE": "Облигации",
        "TRADE_CODE": trade_code,
        "ISIN": isin,
        "EMITENT_FULL_NAME": name,
        "INN": "7700000000",
        "NOMINAL": nominal,
        "CURRENCY": currency,
        "COUPON_PERCENT": coupon,
    }
    row.update(extra)
    return row


def build_market_table(
    layout: MarketTableLayout, rows: Sequence[Mapping[str, str]]
) -> str:
    """
    Market-table page for ``layout``. Row keys: ``isin``, ``name`` and the
    field names of the layout (missing values render as empty cells).
    """
    header = "".join(f"<th>{label}</th>" for label in layout.table.expected_header)
    body = []
    for row in rows:
        cells = []
        for f in layout.table.fields:
            if f.name == NAME:
                cells.append(
                    f'<td><a href="/q/bonds/{row["isin"]}/">{row["name"]}</a></td>'
                )
            else:
                cells.append(f"<td>{row.get(f.name, '') if f.name else '-'}</td>")
        body.append(f"<tr>{''.join(cells)}</tr>")
    return (
        "<html><body>"
        '<div class="header"><p>smart-lab</p></div>'
        '<div class="main"><div class="content">'
        f"<table><tr>{header}</tr>{''.join(body)}</table>"
        "</div></div></body></html>"
    )


def build_statistics_page(
    mode: TradingMode, rows: Sequence[tuple[str, str, str, str, str, str]]
) -> str:
    """Statistics page; rows are ``(name, bid, ask, securities, volume, transactions)``."""
    lead = 1 if mode is MODE_TPLUS else 0
    width = len(mode.layout.fields)
    header = "".join(f"<th>c{i}</th>" for i in range(width))
    body = []
    for name, bid, ask, securities, volume, transactions in rows:
        cells = ["<td>x</td>"] * lead + [
            f"<td><a href='#'>{name}</a></td>",
            f"<td>{bid}</td>",
            f"<td>{ask}</td>",
            "<td>-</td>",
            f"<td>{securities}</td>",
            f"<td>{volume}</td>",
            f"<td>{transactions}</td>",
            "<td>more</td>",
        ]
        body.append(f"<tr>{''.join(cells)}</tr>")
    return (
        "<html><body><div><div><div>"
        "<table><tbody><tr><td><div>"
        f"<table><tbody><tr>{header}</tr></tbody><tbody>{''.join(body)}</tbody></table>"
        "</div></td></tr></tbody></table>"
        "</div></div></div></body></html>"
    )


def build_search_page(href: Optional[str]) -> str:
    if href is None:
        return "<html><body><div><p>Ничего не найдено</p></div></body></html>"
    return (
        "<html><body><div><table>"
        "<thead><tr><th>Выпуск</th></tr></thead>"
        f'<tbody><tr><td><a href="{href}">bond</a></td></tr></tbody>'
        "</table></div></body></html>"
    )


def build_detail_page(
    *,
    redemption: str = "Единовременно",
    options: str = "",
    coupon_type: str = "Постоянный",
    freq: int = 2,
    period: str = "3 (10)",
) -> str:
    offer = f"<div>ОФЕРТЫ или ДОСРОЧН.ПОГАШЕНИЕ {options} КУПОН</div>" if options else ""
    return (
        "<html><body><!-- top --><script>var s = '<b>';</script>"
        f"<div>ПОГАШЕНИЕ - {redemption}</div>{offer}"
        f"<div>КУПОН&nbsp;-&nbsp;{coupon_type}</div>"
        f"<div>Периодичность выплат в год: {freq}</div>"
        f"<div>Текущий купон (всего): {period}</div>"
        "</body></html>"
    )


@pytest.fixture
def pages() -> SimpleNamespace:
    """Builders for every source document used in tests."""
    return SimpleNamespace(
        listing_csv=build_listing_csv,
        listing_row=listing_row,
        market_table=build_market_table,
        statistics=build_statistics_page,
        search=build_search_page,
        detail=build_detail_page,
    )
