"""
MOEX ISS issuer reference (``securities.json``), keyed by SECID.

The ISS endpoint is paged: ``start=N`` is advanced by the number of rows
received until an empty page comes back. Each row must carry exactly the
four requested columns.

The result can be cached as a JSON file::

    {"<SECID>": {"type": "...", "title": "...", "inn": "..."}, ...}

An unreadable or malformed cache is logged and replaced by a fresh download.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Mapping, Optional, cast

from mxm_bondscreen.bonds.model import EmitentInfo
from mxm_bondscreen.common.errors import SchemaDriftError
from mxm_bondscreen.common.file_io import JSONLike, read_json, write_json
from mxm_bondscreen.common.http_adapter import Fetcher

logger = logging.getLogger(__name__)

SOURCE = "moex_iss"
COLUMNS: tuple[str, ...] = ("secid", "type", "emitent_title", "emitent_inn")
ISS_SECURITIES_URL = (
    "https://iss.moex.com/iss/securities.json?engine=stock&market=bonds"
    "&iss.meta=off&securities.columns={columns}&start={start}"
)

__all__ = [
    "parse_emitents_page",
    "download_emitents",
    "load_emitents",
    "emitents_to_json",
    "emitents_from_json",
]


def parse_emitents_page(text: str) -> dict[str, EmitentInfo]:
    """Decode one ISS page into ``{secid: EmitentInfo}``."""
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SchemaDriftError(SOURCE, f"invalid JSON: {exc}") from exc

    try:
        data = payload["securities"]["data"]
    except (KeyError, TypeError) as exc:
        raise SchemaDriftError(SOURCE, "missing securities.data block") from exc

    out: dict[str, EmitentInfo] = {}
    for row in cast(list[Any], data):
        if not isinstance(row, list) or len(row) != len(COLUMNS):
            raise SchemaDriftError(SOURCE, f"unexpected row format {row!r}")
        secid, kind, title, inn = ("" if v is None else str(v) for v in row)
        out[secid] = EmitentInfo(secid=secid, type=kind, title=title, inn=inn)
    return out


def download_emitents(fetcher: Fetcher) -> dict[str, EmitentInfo]:
    """Page through the ISS endpoint until an empty page."""
    result: dict[str, EmitentInfo] = {}
    start = 0
    while True:
        url = ISS_SECURITIES_URL.format(columns=",".join(COLUMNS), start=start)
        logger.debug("requesting emitents %s", url)
        page = parse_emitents_page(fetcher.fetch_text(url))
        if not page:
            break
        result.update(page)
        start += len(page)
    logger.info("%s: %d emitents downloaded", SOURCE, len(result))
    return result


# ---------- Cache ----------


def emitents_to_json(emitents: Mapping[str, EmitentInfo]) -> JSONLike:
    return {
        secid: {"type": e.type, "title": e.title, "inn": e.inn}
        for secid, e in sorted(emitents.items())
    }


def emitents_from_json(data: JSONLike) -> dict[str, EmitentInfo]:
    if not isinstance(data, dict):
        raise ValueError("emitent cache must be a JSON object")
    out: dict[str, EmitentInfo] = {}
    for secid, node in data.items():
        if not isinstance(node, dict):
            raise ValueError(f"emitent cache entry {secid!r} is not an object")
        out[secid] = EmitentInfo(
            secid=secid,
            type=str(node.get("type", "")),
            title=str(node.get("title", "")),
            inn=str(node.get("inn", "")),
        )
    return out


def load_emitents(
    fetcher: Fetcher, cache_path: Optional[Path] = None
) -> dict[str, EmitentInfo]:
    """Return emitents from ``cache_path`` when usable, else download (and cache)."""
    if cache_path is not None and cache_path.exists():
        try:
            cached = emitents_from_json(read_json(cache_path))
        except ValueError as exc:
            # json.JSONDecodeError is a ValueError
            logger.warning(
                "can't decode emitent cache %s (will be requested again): %s",
                cache_path,
                exc,
            )
        else:
            logger.info("%s: %d emitents read from %s", SOURCE, len(cached), cache_path)
            return cached

    emitents = download_emitents(fetcher)
    if cache_path is not None:
        write_json(cache_path, emitents_to_json(emitents))
    return emitents
