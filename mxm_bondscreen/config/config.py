"""
Config loading and views for mxm-bondscreen.

The configuration is an OmegaConf tree composed from the YAML files shipped
in this package:

    default.yaml -> environment.yaml[env] -> profile.yaml[profile]
                 -> optional user file -> overrides

The composed tree is resolved and read-only. Components never read it
directly; entry points call :func:`load_screen_settings` once and pass the
resulting :class:`~mxm_bondscreen.screen.core.ScreenSettings` around.

- screen_view(cfg):        screening parameters (`screen`)
- filters_view(cfg):       filter thresholds (`screen.filters`)
- http_adapter_view(cfg):  HTTP adapter config (`http.adapter`)
"""

from __future__ import annotations

from datetime import date
from importlib.resources import files
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional, Sequence, cast

from omegaconf import DictConfig, ListConfig, OmegaConf, read_write

from mxm_bondscreen.bonds.model import BondType
from mxm_bondscreen.bonds.yields import YieldConventions
from mxm_bondscreen.common.tabular import parse_date
from mxm_bondscreen.screen.core import (
    FilterSettings,
    ScreenSettings,
    resolve_maturity_bound,
)

DEFAULT_FILE = "default.yaml"
ENVIRONMENT_FILE = "environment.yaml"
PROFILE_FILE = "profile.yaml"


class ConfigError(RuntimeError):
    pass


# ---------- Loading ----------


def _packaged_yaml(name: str) -> DictConfig:
    text = files(__package__).joinpath(name).read_text(encoding="utf-8")
    return cast(DictConfig, OmegaConf.create(text))


def _select_block(layers: DictConfig, name: str, kind: str) -> DictConfig:
    if name not in layers:
        known = ", ".join(str(k) for k in layers.keys())
        raise ConfigError(f"Unknown {kind} {name!r} (known: {known})")
    block = layers[name]
    if block is None:
        return OmegaConf.create({})
    return cast(DictConfig, block)


def load_config(
    env: str = "dev",
    profile: str = "default",
    *,
    config_file: Optional[str | Path] = None,
    overrides: Optional[Mapping[str, Any] | Sequence[str]] = None,
) -> DictConfig:
    """
    Compose, resolve and freeze the configuration.

    ``overrides`` is either a nested mapping or a dotlist such as
    ``["screen.pool_size=4", "screen.filters.min_transactions=1"]``.
    """
    layers: list[DictConfig] = [
        _packaged_yaml(DEFAULT_FILE),
        _select_block(_packaged_yaml(ENVIRONMENT_FILE), env, "environment"),
        _select_block(_packaged_yaml(PROFILE_FILE), profile, "profile"),
    ]
    if config_file is not None:
        path = Path(config_file)
        if not path.is_file():
            raise ConfigError(f"Config file not found: {path}")
        layers.append(cast(DictConfig, OmegaConf.load(path)))
    if overrides:
        if isinstance(overrides, Mapping):
            layers.append(OmegaConf.create(dict(overrides)))
        else:
            layers.append(OmegaConf.from_dotlist(list(overrides)))

    merged = cast(DictConfig, OmegaConf.merge(*layers))
    OmegaConf.resolve(merged)
    OmegaConf.set_readonly(merged, True)
    return merged


# ---------- Views ----------


def make_view(cfg: DictConfig, path: str, *, resolve: bool = True) -> DictConfig:
    """Read-only view onto the mapping at ``path`` (``KeyError`` when absent)."""
    selected = OmegaConf.select(cfg, path)
    if selected is None:
        raise KeyError(f"Config path not found: '{path}'")
    if not isinstance(selected, DictConfig):
        raise TypeError(f"Config path '{path}' is not a mapping")
    if resolve:
        with read_write(selected):
            OmegaConf.resolve(selected)
    OmegaConf.set_readonly(selected, True)
    return selected


def screen_view(cfg: DictConfig, *, resolve: bool = True) -> DictConfig:
    """Read-only view rooted at `screen`."""
    return make_view(cfg, "screen", resolve=resolve)


def filters_view(cfg: DictConfig, *, resolve: bool = True) -> DictConfig:
    """Read-only view rooted at `screen.filters`."""
    return make_view(cfg, "screen.filters", resolve=resolve)


def http_adapter_view(cfg: DictConfig, *, resolve: bool = True) -> DictConfig:
    """Read-only view rooted at `http.adapter`."""
    return make_view(cfg, "http.adapter", resolve=resolve)


# ---------- Validation ----------


def _must_have(d: Any, path: str, keys: Iterable[str]) -> None:
    missing = [k for k in keys if k not in d]
    if missing:
        raise ConfigError(f"Missing keys at {path}: {', '.join(missing)}")


def ensure_screen_config(cfg: DictConfig) -> None:
    try:
        s = screen_view(cfg)
        f = filters_view(cfg)
        http = http_adapter_view(cfg)
    except (KeyError, TypeError) as exc:
        raise ConfigError(str(exc)) from exc

    _must_have(
        s,
        "screen",
        (
            "bond_types",
            "commission_percent",
            "statistics_date",
            "statistics_days",
            "pool_size",
            "conventions",
            "filters",
            "lists",
            "emitents",
            "output",
        ),
    )
    _must_have(
        s.conventions, "screen.conventions", ("tax_rate", "tax_exempt_types", "day_basis")
    )
    _must_have(
        f,
        "screen.filters",
        (
            "min_clean_price_percent",
            "min_transactions",
            "min_coupon_percent",
            "min_maturity_date",
            "max_maturity_date",
            "max_maturity_years",
            "min_yield",
            "any_coupon_type",
            "any_redemption_type",
        ),
    )
    _must_have(http, "http.adapter", ("user_agent", "default_timeout"))


# ---------- Settings ----------


def _opt_date(value: Any, key: str) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    try:
        return parse_date(str(value))
    except ValueError as exc:
        raise ConfigError(f"{key}: {exc}") from exc


def _opt_int(value: Any) -> Optional[int]:
    return None if value is None else int(value)


def _opt_path(value: Any) -> Optional[Path]:
    return None if value in (None, "") else Path(str(value))


def _str_list(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if isinstance(value, (ListConfig, list, tuple)):
        return tuple(str(v) for v in value)
    raise ConfigError(f"expected a list of strings, got {value!r}")


def _bond_types(value: Any) -> tuple[BondType, ...]:
    names = value.split(",") if isinstance(value, str) else _str_list(value)
    try:
        return tuple(BondType.parse(n) for n in names if n.strip())
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc


def load_filter_settings(cfg: DictConfig, today: Optional[date] = None) -> FilterSettings:
    f = filters_view(cfg)
    today = today or date.today()

    min_maturity = resolve_maturity_bound(
        provided=_opt_date(f.min_maturity_date, "screen.filters.min_maturity_date"),
        years=_opt_int(f.get("min_maturity_years")),
        today=today,
    )

    return FilterSettings(
        min_clean_price_percent=float(f.min_clean_price_percent),
        min_transactions=int(f.min_transactions),
        min_coupon_percent=float(f.min_coupon_percent),
        min_maturity_date=min_maturity,
        max_maturity_date=resolve_maturity_bound(
            provided=_opt_date(f.max_maturity_date, "screen.filters.max_maturity_date"),
            years=_opt_int(f.max_maturity_years),
            today=today,
        ),
        min_yield=MappingProxyType(
            {str(k).upper(): float(v) for k, v in (f.min_yield or {}).items()}
        ),
        any_coupon_type=bool(f.any_coupon_type),
        any_redemption_type=bool(f.any_redemption_type),
    )


def load_screen_settings(cfg: DictConfig, today: Optional[date] = None) -> ScreenSettings:
    """Convert the `screen` block into typed, immutable run settings."""
    ensure_screen_config(cfg)
    s = screen_view(cfg)

    conventions = YieldConventions(
        tax_rate=float(s.conventions.tax_rate),
        tax_exempt_types=frozenset(_bond_types(s.conventions.tax_exempt_types)),
        day_basis=float(s.conventions.day_basis),
    )
    pool_size = int(s.pool_size)
    days = int(s.statistics_days)
    if pool_size < 1 or days < 1:
        raise ConfigError("screen.pool_size and screen.statistics_days must be >= 1")

    comments = s.lists.get("emitent_comments")
    return ScreenSettings(
        bond_types=_bond_types(s.bond_types),
        commission_percent=float(s.commission_percent),
        statistics_date=_opt_date(s.statistics_date, "screen.statistics_date"),
        statistics_days=days,
        pool_size=pool_size,
        enrich_details=bool(s.get("enrich_details", True)),
        conventions=conventions,
        filters=load_filter_settings(cfg, today),
        emitent_blacklist_paths=_str_list(s.lists.get("emitent_blacklist")),
        securities_blacklist_paths=_str_list(s.lists.get("securities_blacklist")),
        emitent_comments_path=str(comments) if comments else None,
        emitents_enabled=bool(s.emitents.enabled),
        emitent_cache_path=_opt_path(s.emitents.get("cache_path")),
        output_text_path=_opt_path(s.output.get("text_path")),
        output_json_path=_opt_path(s.output.get("json_path")),
    )


__all__ = [
    "ConfigError",
    "load_config",
    "make_view",
    "screen_view",
    "filters_view",
    "http_adapter_view",
    "ensure_screen_config",
    "load_filter_settings",
    "load_screen_settings",
]
