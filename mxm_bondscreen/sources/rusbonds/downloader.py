"""Two-step rusbonds lookup: search by ISIN, then fetch the detail page."""

from __future__ import annotations

from typing import Optional
from urllib.parse import quote, urljoin

from mxm_bondscreen.common.http_adapter import Fetcher
from mxm_bondscreen.sources.rusbonds.parser import (
    BondDetails,
    parse_detail_page,
    parse_search_page,
)

BASE_URL = "https://www.rusbonds.ru"
SEARCH_URL = (
    BASE_URL + "/srch_simple.asp?go=1&nick={isin}&emit=0&sec=0&status=&cat=0"
    "&per=0&rate=0&ctype=0&pvt=0&grnt=0&conv=0&amm=0&bpog=&epog=&brazm=&erazm="
    "&bvip=&evip=&brep=&erep=&bemis=&eemis=&bstav=&estav=&bcvol=&ecvol=#rslt"
)
ENCODING = "cp1251"


def search_url(isin: str) -> str:
    return SEARCH_URL.format(isin=quote(isin, safe=""))


def search_bond_details(fetcher: Fetcher, isin: str) -> Optional[BondDetails]:
    """
    Look ``isin`` up and parse its detail page.

    Returns ``None`` when the search has no result. Fetch errors and
    malformed result tables propagate.
    """
    href = parse_search_page(fetcher.fetch_text(search_url(isin), encoding=ENCODING))
    if href is None:
        return None
    page = fetcher.fetch_text(urljoin(BASE_URL, href), encoding=ENCODING)
    return parse_detail_page(page)
