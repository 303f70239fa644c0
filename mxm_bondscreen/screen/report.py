"""
Report writer: ranked bonds as labeled text blocks and as JSON.

Text report::

    1: Type:               corp
    ISIN:               RU000A0JX0J2
    ...
    Liquid:             yes (securities/transactions/volume: 8/3/150.000)

    2: ...

Ranks start at 1. The JSON report is an array of flat objects in rank
order.
"""

from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Optional, Sequence

from mxm_bondscreen.bonds.model import BondRecord
from mxm_bondscreen.common.file_io import JSONLike, write_json, write_text

LABEL_WIDTH = 20


def _line(label: str, value: str) -> str:
    return f"{label + ':':<{LABEL_WIDTH}}{value}"


def _day(d: Optional[date]) -> str:
    return d.isoformat() if d is not None else "-"


def _percent(v: Optional[float]) -> str:
    return f"{v:.3f}%" if v is not None else "n/a"


def format_bond(b: BondRecord) -> str:
    """Multi-line labeled block for one bond (ends with a newline)."""
    lines = [
        _line("Type", str(b.type)),
        _line("ISIN", b.isin),
        _line("Emitent", f"{b.short_name} ({b.name})"),
        _line("Nominal", f"{b.nominal:.3f}"),
        _line("Coupon", f"{b.coupon_interest:.3f}%"),
        _line("CouponType", b.coupon_type),
        _line("CouponFreq", f"{b.coupon_freq} (per year)"),
        _line("CouponPeriod", b.coupon_period),
        _line("Currency", b.currency),
        _line("Accrued interest", f"{b.accrued_interest:.3f}"),
        _line("Clean price", f"{b.clean_price:.3f} ({b.clean_price_percent:.3f}%)"),
        _line("Dirty price", f"{b.dirty_price:.3f}"),
        _line("Maturity Date", _day(b.maturity_date)),
    ]
    if b.offer_date is not None:
        lines.append(_line("Offer date", _day(b.offer_date)))
        lines.append(_line("Yield to offer", _percent(b.yield_to_offer)))
    lines += [
        _line("Days to maturity", str(b.days_to_maturity)),
        _line("Yield to maturity", _percent(b.yield_to_maturity)),
    ]
    if b.redemption:
        lines.append(_line("Redemption", b.redemption))
    if b.options:
        lines.append(_line("Options", b.options))
    if b.emitent is not None:
        lines.append(_line("Issuer", f"{b.emitent.title} (INN {b.emitent.inn})"))
    if b.comment:
        lines.append(_line("Comment", b.comment))

    if b.is_liquid:
        liquid = (
            "yes (securities/transactions/volume: "
            f"{b.securities_count}/{b.transactions_count}/{b.trade_volume:.3f})"
        )
    else:
        liquid = "no"
    lines.append(_line("Liquid", liquid))
    return "\n".join(lines) + "\n"


def render_report(bonds: Sequence[BondRecord]) -> str:
    return "".join(f"{i}: {format_bond(b)}\n" for i, b in enumerate(bonds, start=1))


def write_text_report(bonds: Sequence[BondRecord], path: Path) -> Path:
    return write_text(path, render_report(bonds))


# ---------- JSON ----------


def bond_to_json(b: BondRecord) -> dict[str, JSONLike]:
    return {
        "type": str(b.type),
        "isin": b.isin,
        "short_name": b.short_name,
        "name": b.name,
        "trade_code": b.trade_code,
        "currency": b.currency,
        "nominal": b.nominal,
        "coupon_interest": b.coupon_interest,
        "coupon_type": b.coupon_type,
        "coupon_freq": b.coupon_freq,
        "coupon_period": b.coupon_period,
        "accrued_interest": b.accrued_interest,
        "clean_price": b.clean_price,
        "clean_price_percent": b.clean_price_percent,
        "dirty_price": b.dirty_price,
        "maturity_date": b.maturity_date.isoformat() if b.maturity_date else None,
        "offer_date": b.offer_date.isoformat() if b.offer_date else None,
        "days_to_maturity": b.days_to_maturity,
        "yield_to_maturity": b.yield_to_maturity,
        "yield_to_offer": b.yield_to_offer,
        "redemption": b.redemption,
        "options": b.options,
        "securities_count": b.securities_count,
        "transactions_count": b.transactions_count,
        "trade_volume": b.trade_volume,
        "emitent": b.emitent_title or None,
        "emitent_inn": b.emitent.inn if b.emitent else None,
        "comment": b.comment,
        "liquid": b.is_liquid,
    }


def write_json_report(bonds: Sequence[BondRecord], path: Path) -> Path:
    return write_json(path, [bond_to_json(b) for b in bonds])
