"""
Core settings and date policies for a screening run.

This module keeps the orchestration (`run.py`) thin by factoring out:
- typed, immutable run settings (`ScreenSettings`, `FilterSettings`)
- statistics-date resolution (`resolve_statistics_date`)
- maturity-window resolution (`resolve_maturity_bound`)

Settings are built once from config (see
:func:`mxm_bondscreen.config.config.load_screen_settings`) and passed to
every component explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional

from mxm_bondscreen.bonds.model import BondType
from mxm_bondscreen.bonds.yields import YieldConventions

# Statistics of the current day are complete only after the evening close.
STATISTICS_CUTOFF_HOUR = 18

# ---------- Settings ----------


@dataclass(frozen=True)
class FilterSettings:
    min_clean_price_percent: float = 50.0
    min_transactions: int = 0
    min_coupon_percent: float = 0.0
    min_maturity_date: Optional[date] = None
    max_maturity_date: Optional[date] = None
    min_yield: Mapping[str, float] = field(
        default_factory=lambda: MappingProxyType({"RUB": 8.0, "USD": 4.0, "EUR": 4.0})
    )
    any_coupon_type: bool = False
    any_redemption_type: bool = False

    def yield_floor(self, currency: str) -> float:
        return float(self.min_yield.get(currency, 0.0))


@dataclass(frozen=True)
class ScreenSettings:
    bond_types: tuple[BondType, ...] = tuple(BondType)
    commission_percent: float = 0.1
    statistics_date: Optional[date] = None
    statistics_days: int = 3
    pool_size: int = 10
    enrich_details: bool = True
    conventions: YieldConventions = YieldConventions()
    filters: FilterSettings = FilterSettings()

    emitent_blacklist_paths: tuple[str, ...] = ()
    securities_blacklist_paths: tuple[str, ...] = ()
    emitent_comments_path: Optional[str] = None
    emitents_enabled: bool = False
    emitent_cache_path: Optional[Path] = None

    output_text_path: Optional[Path] = None
    output_json_path: Optional[Path] = None


# ---------- Policies ----------


def resolve_statistics_date(
    *, provided: Optional[date], now: Optional[datetime] = None
) -> date:
    """
    Resolve the trade-statistics date for a run.

    Precedence:
      1) provided (CLI/config)
      2) yesterday, while the exchange is still trading (before 18:00)
      3) today
    """
    if provided is not None:
        return provided
    now = now or datetime.now()
    if now.hour < STATISTICS_CUTOFF_HOUR:
        return (now - timedelta(days=1)).date()
    return now.date()


def add_years(day: date, years: int) -> date:
    """Same calendar day ``years`` later (29 Feb falls back to 28 Feb)."""
    try:
        return day.replace(year=day.year + years)
    except ValueError:
        return day.replace(year=day.year + years, day=28)


def resolve_maturity_bound(
    *, provided: Optional[date], years: Optional[int], today: Optional[date] = None
) -> Optional[date]:
    """Explicit date wins; otherwise ``today + years`` (``None`` when unset)."""
    if provided is not None:
        return provided
    if years is None:
        return None
    return add_years(today or date.today(), years)
