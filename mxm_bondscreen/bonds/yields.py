"""
Tax-adjusted yield calculator.

All figures are per one bond and in the bond's currency::

    days         = round((maturity - as_of) / 1 day)
    clean        = nominal * clean_percent / 100
    dirty        = (clean + accrued) * (1 + commission / 100)
    spread       = max(0, nominal - clean) * (1 - tax)
    future       = nominal * coupon / 100 * days / basis * (1 - tax)
    accrued'     = accrued * (1 - tax)
    income       = nominal + spread + accrued' + future
    yield        = (income / dirty - 1) * basis / days * 100

The yield is undefined (``None``) when ``days <= 0``, the clean price is
not positive or ``dirty == 0``.

Tax rate, tax-exempt bond types and the day-count basis come from
:class:`YieldConventions`.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional

from mxm_bondscreen.bonds.model import BondRecord, BondType

__all__ = [
    "YieldConventions",
    "YieldResult",
    "days_between",
    "derive_prices",
    "compute_yield",
    "apply_yields",
]

SECONDS_PER_DAY = 86400.0


@dataclass(frozen=True)
class YieldConventions:
    tax_rate: float = 0.13
    tax_exempt_types: frozenset[BondType] = frozenset({BondType.GOV})
    day_basis: float = 365.0

    def tax_for(self, bond_type: BondType) -> float:
        return 0.0 if bond_type in self.tax_exempt_types else self.tax_rate


@dataclass(frozen=True)
class YieldResult:
    clean_price: float
    clean_price_percent: float
    dirty_price: float
    days_to_maturity: int
    yield_percent: Optional[float]

    @property
    def is_defined(self) -> bool:
        return self.yield_percent is not None


def days_between(as_of: datetime, maturity: date) -> int:
    """Whole days from ``as_of`` to midnight of ``maturity``, rounded to nearest."""
    delta = datetime.combine(maturity, time.min, tzinfo=as_of.tzinfo) - as_of
    return int(round(delta.total_seconds() / SECONDS_PER_DAY))


def derive_prices(
    record: BondRecord, commission_percent: float
) -> tuple[float, float, float]:
    """
    Return ``(clean, clean_percent, dirty)``.

    A non-zero clean-price percent is authoritative; otherwise the percent is
    derived from the absolute clean price.
    """
    if record.clean_price_percent != 0.0:
        clean = record.nominal * record.clean_price_percent / 100.0
        percent = record.clean_price_percent
    else:
        clean = record.clean_price
        percent = clean / record.nominal * 100.0 if record.nominal else 0.0
    dirty = (clean + record.accrued_interest) * (1.0 + commission_percent / 100.0)
    return clean, percent, dirty


def compute_yield(
    record: BondRecord,
    commission_percent: float,
    as_of: datetime,
    *,
    maturity: Optional[date] = None,
    conventions: YieldConventions = YieldConventions(),
) -> YieldResult:
    """
    Evaluate the yield of ``record`` bought at ``as_of`` and held to
    ``maturity`` (defaults to ``record.maturity_date``).

    Raises ``ValueError`` when no maturity date is available.
    """
    end = maturity or record.maturity_date
    if end is None:
        raise ValueError(f"{record.isin}: no maturity date")

    clean, percent, dirty = derive_prices(record, commission_percent)
    days = days_between(as_of, end)

    if days <= 0 or clean <= 0.0 or dirty == 0.0:
        return YieldResult(clean, percent, dirty, days, None)

    keep = 1.0 - conventions.tax_for(record.type)
    basis = conventions.day_basis
    nominal = record.nominal

    spread = max(0.0, nominal - clean) * keep
    future_coupon = nominal * (record.coupon_interest / 100.0) * (days / basis) * keep
    accrued = record.accrued_interest * keep
    income = nominal + spread + accrued + future_coupon

    ytm = (income / dirty - 1.0) * (basis / days) * 100.0
    return YieldResult(clean, percent, dirty, days, ytm)


def apply_yields(
    record: BondRecord,
    commission_percent: float,
    as_of: datetime,
    conventions: YieldConventions = YieldConventions(),
) -> YieldResult:
    """Write prices, days and yields onto ``record``; return the maturity result."""
    result = compute_yield(
        record, commission_percent, as_of, conventions=conventions
    )
    record.clean_price = result.clean_price
    record.clean_price_percent = result.clean_price_percent
    record.dirty_price = result.dirty_price
    record.days_to_maturity = result.days_to_maturity
    record.yield_to_maturity = result.yield_percent

    if record.offer_date is not None:
        offer = compute_yield(
            record,
            commission_percent,
            as_of,
            maturity=record.offer_date,
            conventions=conventions,
        )
        record.yield_to_offer = offer.yield_percent
    return result
