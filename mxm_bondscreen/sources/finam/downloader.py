"""
Downloader for finam trade statistics.

Statistics of a single day are sparse, so several consecutive days ending at
the requested date are fetched concurrently (one worker and one fetcher per
day) and merged oldest-last: the requested date is seen first.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import date, timedelta

from mxm_bondscreen.common.http_adapter import Fetcher, FetcherFactory, open_fetcher
from mxm_bondscreen.sources.finam.parser import (
    SOURCE,
    TRADING_MODES,
    StatisticsEntry,
    TradingMode,
    merge_statistics,
    parse_statistics_page,
)

logger = logging.getLogger(__name__)

STATISTICS_URL = (
    "http://bonds.finam.ru/trades/today/rqdate{rqdate}/default.asp"
    "?order=1&resultsType={results_type}&close=off&bid=on&ask=on"
    "&tradesOnly=1&page=0"
)
STATISTICS_ENCODING = "cp1251"


def rqdate_code(day: date) -> str:
    """Hex-encoded date used in statistics URLs (``2019-12-31`` -> ``7E30C1F``)."""
    return f"{day.year:X}{day.month:02X}{day.day:02X}"


def statistics_url(day: date, mode: TradingMode) -> str:
    return STATISTICS_URL.format(rqdate=rqdate_code(day), results_type=mode.results_type)


def download_day(fetcher: Fetcher, day: date) -> dict[str, StatisticsEntry]:
    """Fetch both trading modes of ``day`` and merge them (T0 first)."""
    pages: list[dict[str, StatisticsEntry]] = []
    skipped = 0
    for mode in TRADING_MODES:
        html = fetcher.fetch_text(
            statistics_url(day, mode), encoding=STATISTICS_ENCODING
        )
        entries, stats = parse_statistics_page(html, mode)
        skipped += stats.skipped
        pages.append(entries)
    merged = merge_statistics(pages)
    logger.debug("%s %s: %d names, %d rows skipped", SOURCE, day, len(merged), skipped)
    return merged


def download_statistics(
    fetcher_factory: FetcherFactory, rq_date: date, days: int = 3
) -> dict[str, StatisticsEntry]:
    """
    Fetch ``days`` consecutive days ending at ``rq_date`` and merge them.

    Any fetch or format error of any day propagates and aborts the download.
    """
    if days < 1:
        raise ValueError("days must be >= 1")

    def _one(offset: int) -> dict[str, StatisticsEntry]:
        with open_fetcher(fetcher_factory) as fetcher:
            return download_day(fetcher, rq_date - timedelta(days=offset))

    with ThreadPoolExecutor(max_workers=days, thread_name_prefix="finam") as pool:
        futures = [pool.submit(_one, offset) for offset in range(days)]
        per_day = [f.result() for f in futures]

    merged = merge_statistics(per_day)
    logger.info(
        "%s: %d bonds with statistics over %d days ending %s",
        SOURCE,
        len(merged),
        days,
        rq_date.isoformat(),
    )
    return merged
