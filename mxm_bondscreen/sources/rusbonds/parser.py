"""
Parsers for rusbonds search results and bond detail pages.

The search page either has a result table (``html/body/div/table/thead``
followed by a ``tbody`` whose first cell links to the detail page) or not;
no table means the bond is unknown to the site, which is not an error.

The detail page is reduced to plain text with BeautifulSoup (comments,
scripts and styles dropped, entities decoded, whitespace collapsed) and five
fields are pulled out with regular expressions. A pattern that does not
match leaves its field empty.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from bs4 import Comment

from mxm_bondscreen.common.errors import DetailPageError
from mxm_bondscreen.common.html import next_element_sibling, node_by_path, parse_html

SEARCH_RESULT_PATH: tuple[str, ...] = ("html", "body", "div", "table", "thead")
RESULT_LINK_PATH: tuple[str, ...] = ("tr", "td", "a")

_COLLAPSE_SPACE = re.compile(r"\s+")

_REDEMPTION = re.compile(r"ПОГАШЕНИЕ\s+-?\s+(\S+)")
_OPTIONS = re.compile(r"ОФЕРТЫ или ДОСРОЧН.ПОГАШЕНИЕ (.+?) КУПОН")
_COUPON_TYPE = re.compile(r"КУПОН\s+-?\s+(\S+)")
_COUPON_FREQ = re.compile(r"Периодичность выплат в год: (\d+)")
_COUPON_PERIOD = re.compile(r"Текущий купон [(]всего[)]: (\d+ [(]\d+[)])")


@dataclass(frozen=True)
class BondDetails:
    redemption: str = ""
    options: str = ""
    coupon_type: str = ""
    coupon_freq: int = 0
    coupon_period: str = ""


def parse_search_page(html: str) -> Optional[str]:
    """Return the detail-page link, or ``None`` when the search found nothing."""
    soup = parse_html(html)
    thead = node_by_path(soup, SEARCH_RESULT_PATH)
    if thead is None:
        return None

    tbody = next_element_sibling(thead)
    if tbody is None:
        raise DetailPageError("search result table has no body")

    link = node_by_path(tbody, RESULT_LINK_PATH)
    if link is None:
        raise DetailPageError("search result has no link to the bond page")

    href = link.get("href")
    if not isinstance(href, str) or not href:
        raise DetailPageError("search result link has no href")
    return href


def page_text(html: str) -> str:
    """Plain-text rendering of a page for pattern matching."""
    soup = parse_html(html)
    for node in soup.find_all(["script", "style"]):
        node.decompose()
    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()
    return _COLLAPSE_SPACE.sub(" ", soup.get_text(" ", strip=True))


def _first_group(pattern: re.Pattern[str], text: str) -> str:
    match = pattern.search(text)
    return match.group(1) if match else ""


def parse_detail_page(html: str) -> BondDetails:
    text = page_text(html)
    freq = _first_group(_COUPON_FREQ, text)
    return BondDetails(
        redemption=_first_group(_REDEMPTION, text),
        options=_first_group(_OPTIONS, text),
        coupon_type=_first_group(_COUPON_TYPE, text),
        coupon_freq=int(freq) if freq else 0,
        coupon_period=_first_group(_COUPON_PERIOD, text),
    )
