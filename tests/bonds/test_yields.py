from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from mxm_bondscreen.bonds.model import BondRecord, BondType
from mxm_bondscreen.bonds.yields import (
    YieldConventions,
    apply_yields,
    compute_yield,
    days_between,
    derive_prices,
)

AS_OF = datetime(2024, 3, 1, 0, 0)


def _record(**overrides: object) -> BondRecord:
    values: dict[str, object] = dict(
        type=BondType.CORP,
        isin="RU000TEST001",
        nominal=1000.0,
        coupon_interest=8.0,
        clean_price_percent=95.0,
        accrued_interest=10.0,
        maturity_date=(AS_OF + timedelta(days=365)).date(),
    )
    values.update(overrides)
    return BondRecord(**values)  # type: ignore[arg-type]


def test_reference_scenario() -> None:
    res = compute_yield(_record(), 0.1, AS_OF)

    assert res.clean_price == pytest.approx(950.0)
    assert res.clean_price_percent == pytest.approx(95.0)
    assert res.dirty_price == pytest.approx(960.96)
    assert res.days_to_maturity == 365
    # income = 1000 + 43.5 + 8.7 + 69.6 = 1121.8
    assert res.yield_percent == pytest.approx((1121.8 / 960.96 - 1) * 100)
    assert res.yield_percent == pytest.approx(16.74, abs=0.01)


def test_gov_bonds_are_tax_exempt_by_default() -> None:
    corp = compute_yield(_record(), 0.1, AS_OF)
    gov = compute_yield(_record(type=BondType.GOV), 0.1, AS_OF)
    assert gov.yield_percent is not None and corp.yield_percent is not None
    assert gov.yield_percent > corp.yield_percent

    # income = 1000 + 50 + 10 + 80 = 1140
    assert gov.yield_percent == pytest.approx((1140.0 / 960.96 - 1) * 100)


def test_conventions_are_configurable() -> None:
    conv = YieldConventions(tax_rate=0.0, tax_exempt_types=frozenset(), day_basis=365.0)
    res = compute_yield(_record(), 0.1, AS_OF, conventions=conv)
    assert res.yield_percent == pytest.approx((1140.0 / 960.96 - 1) * 100)


def test_no_spread_above_par() -> None:
    res = compute_yield(_record(clean_price_percent=105.0), 0.0, AS_OF)
    # spread is clamped at 0: income = 1000 + 0 + 8.7 + 69.6
    assert res.yield_percent == pytest.approx((1078.3 / 1060.0 - 1) * 100)


def test_clean_price_used_when_percent_missing() -> None:
    rec = _record(clean_price_percent=0.0, clean_price=900.0)
    clean, percent, dirty = derive_prices(rec, 0.0)
    assert clean == 900.0
    assert percent == pytest.approx(90.0)
    assert dirty == pytest.approx(910.0)


def test_undefined_at_maturity_day() -> None:
    res = compute_yield(_record(maturity_date=AS_OF.date()), 0.1, AS_OF)
    assert res.days_to_maturity == 0
    assert res.yield_percent is None
    assert not res.is_defined


def test_undefined_after_maturity() -> None:
    res = compute_yield(_record(maturity_date=date(2024, 1, 1)), 0.1, AS_OF)
    assert res.days_to_maturity < 0
    assert res.yield_percent is None


def test_undefined_with_zero_dirty_price() -> None:
    res = compute_yield(
        _record(clean_price_percent=0.0, clean_price=0.0, accrued_interest=0.0),
        0.1,
        AS_OF,
    )
    assert res.dirty_price == 0.0
    assert res.yield_percent is None


def test_undefined_without_clean_price() -> None:
    # accrued interest alone keeps the dirty price positive
    res = compute_yield(
        _record(clean_price_percent=0.0, clean_price=0.0), 0.1, AS_OF
    )
    assert res.clean_price == 0.0
    assert res.dirty_price == pytest.approx(10.01)
    assert res.yield_percent is None


def test_missing_maturity_raises() -> None:
    with pytest.raises(ValueError, match="no maturity date"):
        compute_yield(_record(maturity_date=None), 0.1, AS_OF)


def test_days_are_rounded_to_nearest() -> None:
    assert days_between(datetime(2024, 3, 1, 11, 0), date(2024, 3, 11)) == 10
    assert days_between(datetime(2024, 3, 1, 13, 0), date(2024, 3, 11)) == 9


def test_apply_yields_writes_record_and_offer_yield() -> None:
    rec = _record(offer_date=(AS_OF + timedelta(days=182)).date())
    result = apply_yields(rec, 0.1, AS_OF)

    assert rec.clean_price == pytest.approx(950.0)
    assert rec.dirty_price == pytest.approx(960.96)
    assert rec.days_to_maturity == 365
    assert rec.yield_to_maturity == result.yield_percent
    assert rec.yield_to_offer is not None
    # Shorter horizon with the same discount: higher annualized yield.
    assert rec.yield_to_offer > rec.yield_to_maturity  # type: ignore[operator]


def test_apply_yields_without_offer_leaves_offer_yield_unset() -> None:
    rec = _record()
    apply_yields(rec, 0.1, AS_OF)
    assert rec.yield_to_offer is None
