"""
MOEX securities listing (CSV, cp1251).

The listing is the authoritative source for nominal, coupon rate, currency
and the issuer's full legal name. Rows are positional; the 39-column header
is validated literally before any data row is read.

Kept rows are bonds (``SUPERTYPE == "Облигации"``) with an ISIN, not limited
to qualified investors, without a default or technical-default flag and with
a coupon cell of the form ``"<number>%..."``. Each entry is keyed by ISIN
and, when it differs, also by trade code.
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass
from typing import Mapping

from mxm_bondscreen.common.errors import MalformedRowError
from mxm_bondscreen.common.http_adapter import Fetcher
from mxm_bondscreen.common.tabular import (
    Field,
    ParseStats,
    TableLayout,
    clean_number,
    identity,
    parse_table,
)

logger = logging.getLogger(__name__)

SOURCE = "moex"
LISTING_URL = "https://www.moex.com/ru/listing/securities-list-csv.aspx?type=1"
LISTING_ENCODING = "cp1251"

# fmt: off
COLUMNS: tuple[str, ...] = (
    "DATESTAMP", "INSTRUMENT_ID", "LIST_SECTION", "RN", "SUPERTYPE",
    "INSTRUMENT_TYPE", "INSTRUMENT_CATEGORY", "TRADE_CODE", "ISIN",
    "REGISTRY_NUMBER", "REGISTRY_DATE", "EMITENT_FULL_NAME", "INN",
    "NOMINAL", "CURRENCY", "ISSUE_AMOUNT", "DECISION_DATE",
    "OKSM_EDR", "ONLY_EMITENT_FULL_NAME", "REG_COUNTRY", "QUALIFIED_INVESTOR",
    "HAS_PROSPECTUS", "IS_CONCESSION_AGREEMENT", "IS_MORTGAGE_AGENT",
    "INCLUDED_DURING_CREATION", "SECURITY_HAS_DEFAULT",
    "SECURITY_HAS_TECH_DEFAULT", "INCLUDED_WITHOUT_COMPLIANCE",
    "RETAINED_WITHOUT_COMPLIANCE", "HAS_RESTRICTION_CIRCULATION",
    "LISTING_LEVEL_HIST", "OBLIGATION_PROGRAM_RN", "COUPON_PERCENT",
    "EARLY_REPAYMENT", "EARLY_REDEMPTION", "ISS_BOARDS", "OTHER_SECURITIES",
    "DISCLOSURE_PART_PAGE", "DISCLOSURE_RF_INFO_PAGE",
)
# fmt: on

LISTING_LAYOUT = TableLayout(
    source=SOURCE,
    expected_header=COLUMNS,
    fields=tuple(Field(name) for name in COLUMNS),
    strict=True,
)

BOND_SUPERTYPE = "Облигации"
FLAG_SET = "+"

CURRENCY_CODES: Mapping[str, str] = {
    "Рубль": "RUB",
    "Российский рубль": "RUB",
    "SUR": "RUB",
    "RUB": "RUB",
    "Доллар США": "USD",
    "USD": "USD",
    "Евро": "EUR",
    "EUR": "EUR",
}


@dataclass(frozen=True)
class ListingEntry:
    isin: str
    trade_code: str
    name: str
    nominal: float
    coupon_interest: float
    currency: str
    inn: str = ""


@dataclass(frozen=True)
class ListingResult:
    entries: Mapping[str, ListingEntry]
    stats: ParseStats
    excluded: int

    def get(self, key: str) -> ListingEntry | None:
        return self.entries.get(key)

    def __len__(self) -> int:
        return len(self.entries)


def currency_code(name: str) -> str:
    """Map a listing currency name to its ISO code; unknown names pass through."""
    value = name.strip()
    return CURRENCY_CODES.get(value, value)


def _coupon_percent(text: str) -> float | None:
    """Number before the first ``%``; ``None`` when the cell has no ``%``."""
    pos = text.find("%")
    if pos == -1:
        return None
    raw = text[:pos]
    try:
        return float(clean_number(raw))
    except ValueError as exc:
        raise MalformedRowError(SOURCE, "COUPON_PERCENT", text) from exc


def _nominal(text: str) -> float:
    try:
        return float(clean_number(text))
    except ValueError as exc:
        raise MalformedRowError(SOURCE, "NOMINAL", text) from exc


def parse_listing_csv(text: str, *, delimiter: str = ",") -> ListingResult:
    """Parse the listing CSV text (already decoded)."""
    reader = csv.reader(io.StringIO(text.lstrip("\ufeff")), delimiter=delimiter)
    header = next(reader, [])
    rows, stats = parse_table(LISTING_LAYOUT, header, reader, identity)

    entries: dict[str, ListingEntry] = {}
    excluded = 0
    for row in rows:
        v = row.values
        isin = v.get("ISIN", "")
        if not isin:
            excluded += 1
            continue
        if v.get("SUPERTYPE", "") != BOND_SUPERTYPE:
            excluded += 1
            continue
        if v.get("QUALIFIED_INVESTOR", "") == FLAG_SET:
            excluded += 1
            continue
        if (
            v.get("SECURITY_HAS_DEFAULT", "") == FLAG_SET
            or v.get("SECURITY_HAS_TECH_DEFAULT", "") == FLAG_SET
        ):
            excluded += 1
            continue

        coupon = _coupon_percent(v.get("COUPON_PERCENT", ""))
        if coupon is None:
            excluded += 1
            continue

        trade_code = v.get("TRADE_CODE", "")
        entry = ListingEntry(
            isin=isin,
            trade_code=trade_code,
            name=v.get("EMITENT_FULL_NAME", ""),
            nominal=_nominal(v.get("NOMINAL", "")),
            coupon_interest=coupon,
            currency=currency_code(v.get("CURRENCY", "")),
            inn=v.get("INN", ""),
        )
        entries[isin] = entry
        if trade_code and trade_code != isin:
            entries[trade_code] = entry

    logger.info(
        "%s listing: %d rows accepted, %d skipped, %d excluded by flags",
        SOURCE,
        stats.accepted,
        stats.skipped,
        excluded,
    )
    return ListingResult(entries=entries, stats=stats, excluded=excluded)


def download_listing(fetcher: Fetcher, url: str = LISTING_URL) -> ListingResult:
    """Fetch and parse the listing CSV."""
    text = fetcher.fetch_text(url, encoding=LISTING_ENCODING)
    return parse_listing_csv(text)
