"""
Detail-page enrichment of surviving bonds.

Each bond is looked up on rusbonds in a bounded worker pool. A worker owns
one fetcher for all the bonds it processes and only ever writes to the
record it was handed. Lookup failures are per bond: they are logged,
counted and leave the record without detail data.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from mxm_bondscreen.bonds.model import BondRecord
from mxm_bondscreen.common.http_adapter import Fetcher, FetcherFactory
from mxm_bondscreen.sources.rusbonds.downloader import search_bond_details
from mxm_bondscreen.sources.rusbonds.parser import BondDetails

logger = logging.getLogger(__name__)

DetailLookup = Callable[[Fetcher, str], Optional[BondDetails]]


@dataclass(frozen=True)
class EnrichStats:
    enriched: int = 0
    not_found: int = 0
    failed: int = 0


def apply_details(record: BondRecord, details: BondDetails) -> None:
    record.redemption = details.redemption
    record.options = details.options
    record.coupon_type = details.coupon_type
    record.coupon_freq = details.coupon_freq
    record.coupon_period = details.coupon_period


# ---------- Single-bond processing unit ----------


def enrich_one(
    record: BondRecord, fetcher: Fetcher, lookup: DetailLookup = search_bond_details
) -> str:
    """
    Look ``record`` up and copy the detail fields onto it.

    Returns the status: ``"ok"``, ``"not_found"`` or ``"err"``.
    """
    try:
        details = lookup(fetcher, record.isin)
    except Exception as exc:
        logger.warning("%s: detail lookup failed: %s", record.isin, exc)
        return "err"
    if details is None:
        logger.debug("%s: no detail page", record.isin)
        return "not_found"
    apply_details(record, details)
    return "ok"


def enrich_with_details(
    bonds: Sequence[BondRecord],
    fetcher_factory: FetcherFactory,
    pool_size: int,
    *,
    lookup: DetailLookup = search_bond_details,
) -> EnrichStats:
    """Enrich ``bonds`` in place with at most ``pool_size`` concurrent lookups."""
    if pool_size < 1:
        raise ValueError("pool_size must be >= 1")
    if not bonds:
        return EnrichStats()

    local = threading.local()
    fetchers: list[Fetcher] = []
    lock = threading.Lock()

    def _fetcher() -> Fetcher:
        fetcher = getattr(local, "fetcher", None)
        if fetcher is None:
            fetcher = fetcher_factory()
            local.fetcher = fetcher
            with lock:
                fetchers.append(fetcher)
        return fetcher

    def _work(record: BondRecord) -> str:
        return enrich_one(record, _fetcher(), lookup)

    try:
        with ThreadPoolExecutor(
            max_workers=min(pool_size, len(bonds)), thread_name_prefix="rusbonds"
        ) as pool:
            statuses = list(pool.map(_work, bonds))
    finally:
        for fetcher in fetchers:
            close = getattr(fetcher, "close", None)
            if callable(close):
                close()

    stats = EnrichStats(
        enriched=statuses.count("ok"),
        not_found=statuses.count("not_found"),
        failed=statuses.count("err"),
    )
    logger.info(
        "enrichment: %d enriched, %d not found, %d failed",
        stats.enriched,
        stats.not_found,
        stats.failed,
    )
    return stats
