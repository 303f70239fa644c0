"""
Join the extractor outputs onto the market-table records.

For each record, in order:

1. look the ISIN up in the listing; a miss drops the record
   (``listing_not_found``),
2. copy currency, coupon rate, nominal, full name and trade code,
3. look the normalized short name up in the trade statistics; a hit copies
   the liquidity counters and, when the ask quote is positive, replaces the
   clean-price percent with it (the price a buyer actually pays); a miss is
   counted (``statistics_not_found``) and the record is kept,
4. attach the issuer reference (by trade code, then ISIN) and its comment
   when those inputs are available; misses are counted and kept.

The counters are diagnostic only and are logged once per merge.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

from mxm_bondscreen.bonds.model import BondRecord, EmitentInfo
from mxm_bondscreen.bonds.normalize import normalize_short_name
from mxm_bondscreen.sources.finam.parser import StatisticsEntry
from mxm_bondscreen.sources.moex.listing import ListingEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MergeStats:
    merged: int = 0
    listing_not_found: int = 0
    statistics_not_found: int = 0
    emitent_not_found: int = 0


@dataclass(frozen=True)
class MergeResult:
    bonds: list[BondRecord]
    stats: MergeStats


def apply_listing(record: BondRecord, entry: ListingEntry) -> None:
    record.currency = entry.currency
    record.coupon_interest = entry.coupon_interest
    record.nominal = entry.nominal
    record.name = entry.name
    record.trade_code = entry.trade_code


def apply_statistics(record: BondRecord, entry: StatisticsEntry) -> None:
    record.securities_count = entry.securities_count
    record.transactions_count = entry.transactions_count
    record.trade_volume = entry.trade_volume
    if entry.ask > 0.0:
        record.clean_price_percent = entry.ask


def _find_emitent(
    record: BondRecord, emitents: Mapping[str, EmitentInfo]
) -> Optional[EmitentInfo]:
    for key in (record.trade_code, record.isin):
        if key and key in emitents:
            return emitents[key]
    return None


def merge_sources(
    bonds: Iterable[BondRecord],
    listing: Mapping[str, ListingEntry],
    statistics: Mapping[str, StatisticsEntry],
    *,
    emitents: Optional[Mapping[str, EmitentInfo]] = None,
    comments: Optional[Mapping[str, str]] = None,
) -> MergeResult:
    """Merge listing, statistics and (optionally) issuer data onto ``bonds``."""
    out: list[BondRecord] = []
    listing_miss = stats_miss = emitent_miss = 0

    for record in bonds:
        entry = listing.get(record.isin)
        if entry is None:
            listing_miss += 1
            continue
        apply_listing(record, entry)

        stat = statistics.get(normalize_short_name(record.short_name))
        if stat is None:
            stats_miss += 1
        else:
            apply_statistics(record, stat)

        if emitents is not None:
            record.emitent = _find_emitent(record, emitents)
            if record.emitent is None:
                emitent_miss += 1
        if comments:
            title = record.emitent_title
            record.comment = comments.get(title, "") if title else ""
            if not record.comment and record.name:
                record.comment = comments.get(record.name, "")

        out.append(record)

    stats = MergeStats(
        merged=len(out),
        listing_not_found=listing_miss,
        statistics_not_found=stats_miss,
        emitent_not_found=emitent_miss,
    )
    logger.info(
        "merge: %d merged, listing not found: %d, statistics not found: %d, "
        "emitent not found: %d",
        stats.merged,
        stats.listing_not_found,
        stats.statistics_not_found,
        stats.emitent_not_found,
    )
    return MergeResult(bonds=out, stats=stats)
