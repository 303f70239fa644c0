from __future__ import annotations

from types import SimpleNamespace
from typing import Callable

import pytest

from mxm_bondscreen.common.errors import MalformedRowError, SchemaDriftError
from mxm_bondscreen.sources.moex.listing import (
    LISTING_URL,
    currency_code,
    download_listing,
    parse_listing_csv,
)


def test_bonds_are_kept_and_keyed_by_isin_and_trade_code(pages: SimpleNamespace) -> None:
    text = pages.listing_csv(
        [
            pages.listing_row("RU000A0JX0J2", "RU000A0JX0J2", "ПАО «МТС»", coupon="8,00%"),
            pages.listing_row(
                "RU000A0JS3W6",
                "SU26207RMFS9",
                "Министерство финансов РФ",
                coupon="8,15% годовых",
                nominal="1 000",
            ),
        ]
    )
    res = parse_listing_csv(text)

    assert res.stats.accepted == 2
    assert res.excluded == 0
    assert len(res) == 3  # one ISIN doubles as trade code

    mts = res.get("RU000A0JX0J2")
    assert mts is not None
    assert mts.name == "ПАО «МТС»"
    assert mts.coupon_interest == 8.0
    assert mts.nominal == 1000.0
    assert mts.currency == "RUB"
    assert mts.inn == "7700000000"

    ofz = res.get("SU26207RMFS9")
    assert ofz is not None and ofz is res.get("RU000A0JS3W6")
    assert ofz.coupon_interest == 8.15
    assert ofz.trade_code == "SU26207RMFS9"


@pytest.mark.parametrize(
    "extra",
    [
        {"SUPERTYPE": "Акции"},
        {"ISIN": ""},
        {"QUALIFIED_INVESTOR": "+"},
        {"SECURITY_HAS_DEFAULT": "+"},
        {"SECURITY_HAS_TECH_DEFAULT": "+"},
        {"COUPON_PERCENT": "плавающий"},
        {"COUPON_PERCENT": ""},
    ],
)
def test_rows_excluded_by_flags(pages: SimpleNamespace, extra: dict[str, str]) -> None:
    row = pages.listing_row("RU000A0ZZ111", "RU000A0ZZ111", "ПАО «Мечел»")
    row.update(extra)
    res = parse_listing_csv(pages.listing_csv([row]))
    assert len(res) == 0
    assert res.excluded == 1


def test_partial_row_is_skipped(pages: SimpleNamespace) -> None:
    text = pages.listing_csv([pages.listing_row("RU1", "RU1", "A")])
    text += "2024-01-01,123,Первый\r\n"
    res = parse_listing_csv(text)
    assert res.stats.accepted == 1
    assert res.stats.skipped == 1


def test_header_drift_is_fatal(pages: SimpleNamespace) -> None:
    text = pages.listing_csv([]).replace("COUPON_PERCENT", "COUPON_RATE")
    with pytest.raises(SchemaDriftError, match="column 33"):
        parse_listing_csv(text)


def test_unparsable_nominal_is_fatal(pages: SimpleNamespace) -> None:
    text = pages.listing_csv([pages.listing_row("RU1", "RU1", "A", nominal="n/a")])
    with pytest.raises(MalformedRowError) as ei:
        parse_listing_csv(text)
    assert ei.value.field == "NOMINAL"


def test_leading_bom_is_ignored(pages: SimpleNamespace) -> None:
    text = "\ufeff" + pages.listing_csv([pages.listing_row("RU1", "RU1", "A")])
    assert len(parse_listing_csv(text)) == 1


def test_currency_codes() -> None:
    assert currency_code("Российский рубль") == "RUB"
    assert currency_code(" Доллар США ") == "USD"
    assert currency_code("Евро") == "EUR"
    assert currency_code("Юань") == "Юань"


def test_download_listing(
    pages: SimpleNamespace, fake_fetcher: Callable[..., object]
) -> None:
    text = pages.listing_csv([pages.listing_row("RU1", "T1", "A", currency="USD")])
    fetcher = fake_fetcher({LISTING_URL: text})
    res = download_listing(fetcher)  # type: ignore[arg-type]
    entry = res.get("T1")
    assert entry is not None and entry.currency == "USD"
