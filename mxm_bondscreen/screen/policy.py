"""
Filter cascade and ranking.

Stages run in a fixed order and the first failing stage decides: a record
is counted under exactly one reason and removed from the surviving list.

    1. blacklisted      emitent / security substring patterns
    2. low_price        clean-price percent below floor
    3. low_liquidity    transactions below floor
    4. low_coupon       coupon percent below floor
    5. maturity         maturity outside [min, max]
    6. low_yield        yield below the floor of the record's currency
    7. coupon_type      non-fixed coupon (unless any_coupon_type)
       amortization     amortizing redemption (unless any_redemption_type)

Stage 7 needs detail-page data, so the orchestrator runs stages 1-6, enriches
the survivors and then runs stage 7 (only when enrichment is enabled). An
unknown coupon type counts as not fixed; an unknown redemption passes.

Surviving records are ranked by yield to maturity (descending), ties by ISIN.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from typing import Callable, Iterable, Optional, Sequence

from mxm_bondscreen.bonds.model import (
    COUPON_TYPE_FIXED,
    REDEMPTION_AMORTIZATION,
    BondRecord,
)
from mxm_bondscreen.screen.core import FilterSettings

logger = logging.getLogger(__name__)

__all__ = [
    "Blacklist",
    "FilterStats",
    "FilterOutcome",
    "pre_enrichment_filters",
    "post_enrichment_filters",
    "rank_bonds",
    "screen_bonds",
]


@dataclass(frozen=True)
class Blacklist:
    emitent_patterns: tuple[str, ...] = ()
    security_patterns: tuple[str, ...] = ()

    @classmethod
    def from_patterns(
        cls, emitents: Iterable[str] = (), securities: Iterable[str] = ()
    ) -> "Blacklist":
        return cls(tuple(p for p in emitents if p), tuple(p for p in securities if p))

    def matches(self, record: BondRecord) -> bool:
        emitent_keys = [k for k in (record.emitent_title, record.name) if k]
        if _any_substring(self.emitent_patterns, emitent_keys):
            return True
        security_keys = [k for k in (record.isin, record.short_name, record.name) if k]
        return _any_substring(self.security_patterns, security_keys)


def _any_substring(patterns: Sequence[str], values: Sequence[str]) -> bool:
    return any(p in v for p in patterns for v in values)


@dataclass(frozen=True)
class FilterStats:
    blacklisted: int = 0
    low_price: int = 0
    low_liquidity: int = 0
    low_coupon: int = 0
    maturity: int = 0
    low_yield: int = 0
    coupon_type: int = 0
    amortization: int = 0

    @property
    def dropped(self) -> int:
        return sum(getattr(self, f.name) for f in fields(self))

    def __add__(self, other: "FilterStats") -> "FilterStats":
        return FilterStats(
            **{f.name: getattr(self, f.name) + getattr(other, f.name) for f in fields(self)}
        )


@dataclass(frozen=True)
class FilterOutcome:
    bonds: list[BondRecord]
    stats: FilterStats


# ---------- Stages ----------

Stage = Callable[[BondRecord], Optional[str]]


def _pre_stages(settings: FilterSettings, blacklist: Blacklist) -> Stage:
    def check(b: BondRecord) -> Optional[str]:
        if blacklist.matches(b):
            return "blacklisted"
        if b.clean_price_percent < settings.min_clean_price_percent:
            return "low_price"
        if b.transactions_count < settings.min_transactions:
            return "low_liquidity"
        if b.coupon_interest < settings.min_coupon_percent:
            return "low_coupon"
        if b.maturity_date is None:
            return "maturity"
        if settings.min_maturity_date and b.maturity_date < settings.min_maturity_date:
            return "maturity"
        if settings.max_maturity_date and b.maturity_date > settings.max_maturity_date:
            return "maturity"
        ytm = b.yield_to_maturity
        if ytm is None or ytm < settings.yield_floor(b.currency):
            return "low_yield"
        return None

    return check


def _post_stages(settings: FilterSettings) -> Stage:
    def check(b: BondRecord) -> Optional[str]:
        if not settings.any_coupon_type and b.coupon_type != COUPON_TYPE_FIXED:
            return "coupon_type"
        if not settings.any_redemption_type and REDEMPTION_AMORTIZATION in b.redemption:
            return "amortization"
        return None

    return check


def _apply(bonds: Iterable[BondRecord], stage: Stage, label: str) -> FilterOutcome:
    kept: list[BondRecord] = []
    counts: dict[str, int] = {}
    for b in bonds:
        reason = stage(b)
        if reason is None:
            kept.append(b)
            continue
        counts[reason] = counts.get(reason, 0) + 1
        logger.debug("%s dropped: %s", b.isin, reason)

    stats = FilterStats(**counts)
    logger.info(
        "%s filters: %d kept, %d dropped (%s)",
        label,
        len(kept),
        stats.dropped,
        ", ".join(f"{k}={v}" for k, v in sorted(counts.items())) or "none",
    )
    return FilterOutcome(bonds=kept, stats=stats)


def pre_enrichment_filters(
    bonds: Iterable[BondRecord],
    settings: FilterSettings,
    blacklist: Blacklist = Blacklist(),
) -> FilterOutcome:
    """Stages 1-6 (everything that needs no detail-page data)."""
    return _apply(bonds, _pre_stages(settings, blacklist), "pre-enrichment")


def post_enrichment_filters(
    bonds: Iterable[BondRecord], settings: FilterSettings
) -> FilterOutcome:
    """Stage 7: coupon type and redemption kind."""
    return _apply(bonds, _post_stages(settings), "post-enrichment")


# ---------- Ranking ----------


def rank_bonds(bonds: Iterable[BondRecord]) -> list[BondRecord]:
    """Highest yield to maturity first; equal yields ordered by ISIN."""

    def key(b: BondRecord) -> tuple[float, str]:
        ytm = b.yield_to_maturity
        return (-(ytm if ytm is not None else float("-inf")), b.isin)

    return sorted(bonds, key=key)


def screen_bonds(
    bonds: Iterable[BondRecord],
    settings: FilterSettings,
    blacklist: Blacklist = Blacklist(),
) -> FilterOutcome:
    """All stages plus ranking, for records that already carry detail data."""
    pre = pre_enrichment_filters(bonds, settings, blacklist)
    post = post_enrichment_filters(pre.bonds, settings)
    return FilterOutcome(bonds=rank_bonds(post.bonds), stats=pre.stats + post.stats)
