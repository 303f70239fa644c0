"""
Bootstrap transport for mxm-bondscreen.

This module turns the ``http.adapter`` config block into a factory of
:class:`HttpRequestsAdapter` instances. Every concurrent task of a run
(one per source, one per statistics day, one per enrichment worker) calls
the factory to get its own adapter, so no ``requests.Session`` is shared
between threads. Nothing happens on import; entry points call
:func:`adapter_factory_from_config` once the config is loaded.

Configuration
-------------
Example (``default.yaml``)::

    http:
      adapter:
        user_agent: "mxm-bondscreen/0.1 (contact@moneyexmachina.com)"
        default_timeout: 30.0
        default_headers:
          Accept: "*/*"

Behavior
--------
- Reads adapter settings via config views (dot access), no dict casting.
- Missing fields fall back to the adapter defaults.
- A missing ``http.adapter`` node falls back to a default adapter, or raises
  ``RuntimeError`` when ``strict=True``.
"""

from __future__ import annotations

import logging
from functools import partial
from typing import Any, Mapping, Optional

from omegaconf import DictConfig

from mxm_bondscreen.common.http_adapter import (
    DEFAULT_USER_AGENT,
    FetcherFactory,
    HttpRequestsAdapter,
)
from mxm_bondscreen.config.config import http_adapter_view

logger = logging.getLogger(__name__)


def _coerce_headers(m: Any) -> Optional[Mapping[str, str]]:
    if m is None or not hasattr(m, "items"):
        return None
    return {str(k): str(v) for k, v in m.items()}


def adapter_factory_from_config(cfg: DictConfig, strict: bool = False) -> FetcherFactory:
    """Return a zero-argument factory of configured HTTP adapters."""
    try:
        http = http_adapter_view(cfg, resolve=True)
    except (KeyError, TypeError) as e:
        if strict:
            raise RuntimeError("Adapter config missing: http.adapter") from e
        logger.debug("http.adapter not configured; using adapter defaults")
        return HttpRequestsAdapter

    user_agent = str(getattr(http, "user_agent", DEFAULT_USER_AGENT))
    default_timeout = float(getattr(http, "default_timeout", 30.0))
    headers = _coerce_headers(getattr(http, "default_headers", None))

    return partial(
        HttpRequestsAdapter,
        user_agent=user_agent,
        default_timeout=default_timeout,
        default_headers=headers,
    )
