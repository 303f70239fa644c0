"""
Screening orchestrator.

    1) load blacklists and comments (local files, fail early)
    2) fan out: listing, statistics, one market table per bond type and
       (optionally) emitents, each task with its own fetcher
    3) join: the first fatal error of any task aborts the run
    4) merge sources onto the market-table records
    5) price every record; drop records without maturity or with an
       undefined yield
    6) filter stages 1-6; with enrichment enabled, enrich survivors and run
       filter stage 7; rank
    7) write the configured reports
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Callable, Mapping, Optional, TypeVar

from mxm_bondscreen.bonds.model import BondRecord, BondType, EmitentInfo
from mxm_bondscreen.bonds.yields import apply_yields
from mxm_bondscreen.common.http_adapter import Fetcher, FetcherFactory, open_fetcher
from mxm_bondscreen.common.tabular import ParseStats
from mxm_bondscreen.common.textlists import load_comments, load_patterns
from mxm_bondscreen.screen.core import ScreenSettings, resolve_statistics_date
from mxm_bondscreen.screen.enrich import EnrichStats, enrich_with_details
from mxm_bondscreen.screen.merge import MergeStats, merge_sources
from mxm_bondscreen.screen.policy import (
    Blacklist,
    FilterOutcome,
    FilterStats,
    post_enrichment_filters,
    pre_enrichment_filters,
    rank_bonds,
)
from mxm_bondscreen.screen.report import write_json_report, write_text_report
from mxm_bondscreen.sources.finam.downloader import download_statistics
from mxm_bondscreen.sources.finam.parser import StatisticsEntry
from mxm_bondscreen.sources.moex.emitents import load_emitents
from mxm_bondscreen.sources.moex.listing import ListingResult, download_listing
from mxm_bondscreen.sources.smartlab.downloader import download_market_table
from mxm_bondscreen.sources.smartlab.parser import MarketTableResult

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class PricingStats:
    priced: int = 0
    no_maturity: int = 0
    undefined_yield: int = 0


@dataclass(frozen=True)
class ScreenResult:
    bonds: list[BondRecord]
    statistics_date: date
    market_tables: Mapping[BondType, ParseStats]
    listing_size: int
    statistics_size: int
    merge: MergeStats
    pricing: PricingStats
    filters: FilterStats
    enrich: Optional[EnrichStats]
    text_path: Optional[Path] = None
    json_path: Optional[Path] = None


@dataclass(frozen=True)
class SourceData:
    listing: ListingResult
    statistics: Mapping[str, StatisticsEntry]
    market_tables: list[MarketTableResult]
    emitents: Optional[Mapping[str, EmitentInfo]]


# ---------- Fan-out ----------


def _with_fetcher(
    factory: FetcherFactory, fn: Callable[[Fetcher], T]
) -> Callable[[], T]:
    def task() -> T:
        with open_fetcher(factory) as fetcher:
            return fn(fetcher)

    return task


def fetch_sources(
    settings: ScreenSettings, fetcher_factory: FetcherFactory, statistics_date: date
) -> SourceData:
    """Run every primary download concurrently and wait for all of them."""
    workers = 2 + len(settings.bond_types) + int(settings.emitents_enabled)
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="source") as pool:
        listing_f = pool.submit(_with_fetcher(fetcher_factory, download_listing))
        stats_f = pool.submit(
            download_statistics,
            fetcher_factory,
            statistics_date,
            settings.statistics_days,
        )
        table_fs = [
            pool.submit(
                _with_fetcher(
                    fetcher_factory, lambda f, t=t: download_market_table(f, t)
                )
            )
            for t in settings.bond_types
        ]
        emitents_f: Optional[Future[dict[str, EmitentInfo]]] = None
        if settings.emitents_enabled:
            cache = settings.emitent_cache_path
            emitents_f = pool.submit(
                _with_fetcher(fetcher_factory, lambda f: load_emitents(f, cache))
            )

        return SourceData(
            listing=listing_f.result(),
            statistics=stats_f.result(),
            market_tables=[f.result() for f in table_fs],
            emitents=emitents_f.result() if emitents_f is not None else None,
        )


# ---------- Pricing ----------


def price_bonds(
    bonds: list[BondRecord], settings: ScreenSettings, as_of: datetime
) -> tuple[list[BondRecord], PricingStats]:
    priced: list[BondRecord] = []
    no_maturity = undefined = 0
    for b in bonds:
        if b.maturity_date is None:
            no_maturity += 1
            continue
        result = apply_yields(b, settings.commission_percent, as_of, settings.conventions)
        if not result.is_defined:
            undefined += 1
            logger.debug("%s: yield undefined (%d days)", b.isin, result.days_to_maturity)
            continue
        priced.append(b)

    stats = PricingStats(
        priced=len(priced), no_maturity=no_maturity, undefined_yield=undefined
    )
    logger.info(
        "pricing: %d priced, %d without maturity, %d with undefined yield",
        stats.priced,
        stats.no_maturity,
        stats.undefined_yield,
    )
    return priced, stats


# ---------- Orchestration ----------


def run_screen(
    settings: ScreenSettings,
    fetcher_factory: FetcherFactory,
    *,
    now: Optional[datetime] = None,
) -> ScreenResult:
    """Run one full screening pass and write the configured reports."""
    now = now or datetime.now()

    blacklist = Blacklist.from_patterns(
        load_patterns(settings.emitent_blacklist_paths),
        load_patterns(settings.securities_blacklist_paths),
    )
    comments = load_comments(settings.emitent_comments_path)

    rq_date = resolve_statistics_date(provided=settings.statistics_date, now=now)
    logger.info(
        "screening %s (statistics date %s)",
        ", ".join(str(t) for t in settings.bond_types),
        rq_date.isoformat(),
    )

    data = fetch_sources(settings, fetcher_factory, rq_date)
    base = [b for table in data.market_tables for b in table.bonds]

    merged = merge_sources(
        base,
        data.listing.entries,
        data.statistics,
        emitents=data.emitents,
        comments=comments,
    )
    priced, pricing = price_bonds(merged.bonds, settings, now)

    pre = pre_enrichment_filters(priced, settings.filters, blacklist)
    enrich: Optional[EnrichStats] = None
    if settings.enrich_details:
        enrich = enrich_with_details(pre.bonds, fetcher_factory, settings.pool_size)
        post = post_enrichment_filters(pre.bonds, settings.filters)
    else:
        post = FilterOutcome(bonds=pre.bonds, stats=FilterStats())
    ranked = rank_bonds(post.bonds)

    text_path = json_path = None
    if settings.output_text_path is not None:
        text_path = write_text_report(ranked, settings.output_text_path)
        logger.info("text report written to %s", text_path)
    if settings.output_json_path is not None:
        json_path = write_json_report(ranked, settings.output_json_path)
        logger.info("json report written to %s", json_path)

    return ScreenResult(
        bonds=ranked,
        statistics_date=rq_date,
        market_tables={t.bond_type: t.stats for t in data.market_tables},
        listing_size=len(data.listing),
        statistics_size=len(data.statistics),
        merge=merged.stats,
        pricing=pricing,
        filters=pre.stats + post.stats,
        enrich=enrich,
        text_path=text_path,
        json_path=json_path,
    )
