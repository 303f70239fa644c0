"""
Per-bond-type layouts of the smart-lab market tables.

Each bond type has its own page and a slightly different column set
(government bonds have an extra ``!`` column and no offer date, eurobonds
have no duration column). Only five columns are read; every other position
is a ``skip`` role.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from mxm_bondscreen.bonds.model import BondType
from mxm_bondscreen.common.tabular import Field, FieldKind, TableLayout

SOURCE = "smartlab"
TABLE_PATH: tuple[str, ...] = ("html", "body", "div", "div", "table", "tbody")

NAME = "name"
MATURITY = "maturity_date"
OFFER = "offer_date"
CLEAN_PERCENT = "clean_price_percent"
ACCRUED = "accrued_interest"

_SKIP = Field.skip()
_NAME = Field(NAME, FieldKind.TEXT)
_MATURITY = Field(MATURITY, FieldKind.DATE)
_OFFER = Field(OFFER, FieldKind.TEXT)
_CLEAN = Field(CLEAN_PERCENT, FieldKind.FLOAT)
_ACCRUED = Field(ACCRUED, FieldKind.FLOAT)


@dataclass(frozen=True)
class MarketTableLayout:
    bond_type: BondType
    url: str
    table: TableLayout
    table_path: tuple[str, ...] = TABLE_PATH


def _layout(
    bond_type: BondType, url: str, columns: list[tuple[str, Field]]
) -> MarketTableLayout:
    return MarketTableLayout(
        bond_type=bond_type,
        url=url,
        table=TableLayout(
            source=f"{SOURCE}/{bond_type.value}",
            expected_header=tuple(label for label, _ in columns),
            fields=tuple(role for _, role in columns),
            strict=False,
        ),
    )


CORP = _layout(
    BondType.CORP,
    "https://smart-lab.ru/q/bonds/",
    [
        ("№", _SKIP),
        ("Время", _SKIP),
        ("Имя", _NAME),
        ("", _SKIP),
        ("Размещение", _SKIP),
        ("Погашение", _MATURITY),
        ("Лет до", _SKIP),
        ("Доходн", _SKIP),
        ("Год.куп.", _SKIP),
        ("Куп.дох.", _SKIP),
        ("Цена", _CLEAN),
        ("Объем, млн руб", _SKIP),
        ("Купон, руб", _SKIP),
        ("Частота,", _SKIP),
        ("НКД, руб", _ACCRUED),
        ("Дюр-я, лет", _SKIP),
        ("Дата купона", _SKIP),
        ("Оферта", _OFFER),
    ],
)

GOV = _layout(
    BondType.GOV,
    "https://smart-lab.ru/q/ofz/",
    [
        ("№", _SKIP),
        ("Время", _SKIP),
        ("Имя", _NAME),
        ("", _SKIP),
        ("Погашение", _MATURITY),
        ("Лет до", _SKIP),
        ("Доходн", _SKIP),
        ("!", _SKIP),
        ("Год.куп.", _SKIP),
        ("Куп.дох.", _SKIP),
        ("Цена", _CLEAN),
        ("Объем,", _SKIP),
        ("Купон, руб", _SKIP),
        ("Частота,", _SKIP),
        ("НКД, руб", _ACCRUED),
        ("Дюр-я, лет", _SKIP),
        ("Дата купона", _SKIP),
    ],
)

MUN = _layout(
    BondType.MUN,
    "https://smart-lab.ru/q/subfed/",
    [
        ("№", _SKIP),
        ("Время", _SKIP),
        ("Имя", _NAME),
        ("", _SKIP),
        ("Погашение", _MATURITY),
        ("Лет до", _SKIP),
        ("Доходн", _SKIP),
        ("Год.куп.", _SKIP),
        ("Куп.дох.", _SKIP),
        ("Цена", _CLEAN),
        ("Объем, млн руб", _SKIP),
        ("Купон, руб", _SKIP),
        ("Частота,", _SKIP),
        ("НКД, руб", _ACCRUED),
        ("Дюр-я, лет", _SKIP),
        ("Дата купона", _SKIP),
        ("Оферта", _OFFER),
    ],
)

EURO = _layout(
    BondType.EURO,
    "https://smart-lab.ru/q/eurobonds/",
    [
        ("№", _SKIP),
        ("Время", _SKIP),
        ("Имя", _NAME),
        ("", _SKIP),
        ("Погашение", _MATURITY),
        ("Лет до", _SKIP),
        ("Доходн", _SKIP),
        ("Год.куп.дох.", _SKIP),
        ("Куп.дох.", _SKIP),
        ("Цена", _CLEAN),
        ("Объем, тыс. $", _SKIP),
        ("Купон, $", _SKIP),
        ("Частота,", _SKIP),
        ("НКД, $", _ACCRUED),
        ("Дата купона", _SKIP),
        ("Оферта", _OFFER),
    ],
)

MARKET_TABLE_LAYOUTS: Mapping[BondType, MarketTableLayout] = MappingProxyType(
    {layout.bond_type: layout for layout in (GOV, MUN, CORP, EURO)}
)


def layout_for(bond_type: BondType) -> MarketTableLayout:
    return MARKET_TABLE_LAYOUTS[bond_type]
