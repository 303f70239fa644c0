"""
Bond data model.

`BondRecord` is the single mutable record that flows through the pipeline:
created by the market-table extractor, completed by the merge, priced by the
yield calculator, optionally enriched with detail-page data and finally
rendered by the report writer. Records are identified by ISIN.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional

__all__ = [
    "BondType",
    "BondRecord",
    "EmitentInfo",
    "COUPON_TYPE_FIXED",
    "REDEMPTION_AMORTIZATION",
]

COUPON_TYPE_FIXED = "Постоянный"
REDEMPTION_AMORTIZATION = "Амортизация"


class BondType(str, Enum):
    GOV = "gov"
    MUN = "mun"
    CORP = "corp"
    EURO = "euro"

    @classmethod
    def parse(cls, name: str) -> "BondType":
        try:
            return cls(name.strip().lower())
        except ValueError:
            allowed = ", ".join(t.value for t in cls)
            raise ValueError(f"unknown bond type {name!r} (expected one of: {allowed})")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class EmitentInfo:
    """Issuer reference row (``secid,type,emitent_title,emitent_inn``)."""

    secid: str
    type: str
    title: str
    inn: str


@dataclass
class BondRecord:
    type: BondType
    isin: str
    short_name: str = ""
    name: str = ""
    trade_code: str = ""
    currency: str = ""

    nominal: float = 0.0
    coupon_interest: float = 0.0
    coupon_type: str = ""
    coupon_freq: int = 0
    coupon_period: str = ""

    accrued_interest: float = 0.0
    clean_price: float = 0.0
    clean_price_percent: float = 0.0
    dirty_price: float = 0.0

    maturity_date: Optional[date] = None
    offer_date: Optional[date] = None
    days_to_maturity: int = 0
    yield_to_maturity: Optional[float] = None
    yield_to_offer: Optional[float] = None

    redemption: str = ""
    options: str = ""

    securities_count: int = 0
    transactions_count: int = 0
    trade_volume: float = 0.0

    emitent: Optional[EmitentInfo] = None
    comment: str = ""

    @property
    def is_liquid(self) -> bool:
        return self.transactions_count != 0

    @property
    def emitent_title(self) -> str:
        return self.emitent.title if self.emitent else ""
