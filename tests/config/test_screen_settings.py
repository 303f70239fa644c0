from __future__ import annotations

from datetime import date, datetime
from pathlib import Path

import pytest

from mxm_bondscreen.bonds.model import BondType
from mxm_bondscreen.config.config import ConfigError, load_config, load_screen_settings
from mxm_bondscreen.screen.core import (
    add_years,
    resolve_maturity_bound,
    resolve_statistics_date,
)

TODAY = date(2024, 1, 15)


def test_default_settings() -> None:
    s = load_screen_settings(load_config(), today=TODAY)

    assert s.bond_types == (BondType.GOV, BondType.MUN, BondType.CORP, BondType.EURO)
    assert s.commission_percent == 0.1
    assert s.statistics_date is None
    assert s.statistics_days == 3
    assert s.pool_size == 10
    assert s.enrich_details is True
    assert s.conventions.tax_rate == 0.13
    assert s.conventions.tax_exempt_types == frozenset({BondType.GOV})
    assert s.filters.min_maturity_date is None
    assert s.filters.max_maturity_date == date(2027, 1, 15)
    assert s.filters.yield_floor("RUB") == 8.0
    assert s.filters.yield_floor("CNY") == 0.0
    assert s.output_text_path == Path("output.txt")
    assert s.output_json_path is None
    assert s.emitents_enabled is False
    assert s.emitent_cache_path == Path(".cache/emitents.json")


def test_settings_are_frozen() -> None:
    s = load_screen_settings(load_config(), today=TODAY)
    with pytest.raises(AttributeError):
        s.pool_size = 3  # type: ignore[misc]
    with pytest.raises(TypeError):
        s.filters.min_yield["RUB"] = 1.0  # type: ignore[index]


def test_conservative_profile_window() -> None:
    s = load_screen_settings(load_config(profile="conservative"), today=TODAY)
    assert s.filters.min_maturity_date == date(2025, 1, 15)
    assert s.filters.max_maturity_date == date(2027, 1, 15)
    assert s.filters.yield_floor("RUB") == 6.0
    assert s.filters.yield_floor("USD") == 4.0


def test_explicit_dates_win() -> None:
    cfg = load_config(
        overrides=[
            "screen.statistics_date=05.01.2024",
            "screen.filters.max_maturity_date=2026-12-31",
        ]
    )
    s = load_screen_settings(cfg, today=TODAY)
    assert s.statistics_date == date(2024, 1, 5)
    assert s.filters.max_maturity_date == date(2026, 12, 31)


def test_bond_types_from_comma_string() -> None:
    cfg = load_config(overrides=["screen.bond_types=corp,mun"])
    s = load_screen_settings(cfg, today=TODAY)
    assert s.bond_types == (BondType.CORP, BondType.MUN)


@pytest.mark.parametrize(
    "override",
    [
        "screen.bond_types=corp,junk",
        "screen.statistics_date=yesterday",
        "screen.pool_size=0",
    ],
)
def test_invalid_settings(override: str) -> None:
    with pytest.raises(ConfigError):
        load_screen_settings(load_config(overrides=[override]), today=TODAY)


def test_list_paths(tmp_path: Path) -> None:
    cfg = load_config(
        overrides={
            "screen": {
                "lists": {
                    "emitent_blacklist": [str(tmp_path / "e.txt")],
                    "securities_blacklist": str(tmp_path / "s.txt"),
                    "emitent_comments": str(tmp_path / "c.txt"),
                }
            }
        }
    )
    s = load_screen_settings(cfg, today=TODAY)
    assert s.emitent_blacklist_paths == (str(tmp_path / "e.txt"),)
    assert s.securities_blacklist_paths == (str(tmp_path / "s.txt"),)
    assert s.emitent_comments_path == str(tmp_path / "c.txt")


# ---------- date policies -----------------------------------------------------


def test_statistics_date_precedence() -> None:
    assert resolve_statistics_date(
        provided=date(2020, 1, 1), now=datetime(2024, 5, 10, 20)
    ) == date(2020, 1, 1)
    assert resolve_statistics_date(
        provided=None, now=datetime(2024, 5, 10, 17, 59)
    ) == date(2024, 5, 9)
    assert resolve_statistics_date(
        provided=None, now=datetime(2024, 5, 10, 18, 0)
    ) == date(2024, 5, 10)


def test_maturity_bound() -> None:
    assert resolve_maturity_bound(provided=None, years=None, today=TODAY) is None
    assert resolve_maturity_bound(provided=None, years=2, today=TODAY) == date(2026, 1, 15)
    assert resolve_maturity_bound(
        provided=date(2030, 1, 1), years=2, today=TODAY
    ) == date(2030, 1, 1)


def test_add_years_leap_day() -> None:
    assert add_years(date(2024, 2, 29), 1) == date(2025, 2, 28)
