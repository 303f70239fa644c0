"""
mxm-bondscreen command line.

Usage examples:
    mxm-bondscreen run
    mxm-bondscreen run --profile conservative --types corp,mun --output out.txt
    mxm-bondscreen run --env prod --set screen.pool_size=4 --debug
    mxm-bondscreen calc --maturity-date 2027-06-01 --clean-price-percent 95 \\
        --coupon-interest 8 --accrued-coupon 12.5 --count 10
"""

from __future__ import annotations

import argparse
import logging
from datetime import date, datetime
from typing import Optional, Sequence

from omegaconf import DictConfig
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from mxm_bondscreen import __version__
from mxm_bondscreen.bonds.model import BondRecord, BondType
from mxm_bondscreen.bonds.yields import apply_yields
from mxm_bondscreen.bootstrap import adapter_factory_from_config
from mxm_bondscreen.common.errors import BondScreenError
from mxm_bondscreen.common.tabular import parse_date
from mxm_bondscreen.config.config import ConfigError, load_config, load_screen_settings
from mxm_bondscreen.screen.report import format_bond
from mxm_bondscreen.screen.run import ScreenResult, run_screen

logger = logging.getLogger("mxm_bondscreen")

console = Console()


def configure_logging(debug: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    # urllib3 connection chatter is only useful when debugging transport
    logging.getLogger("urllib3").setLevel(logging.INFO if debug else logging.WARNING)


# ---------- Arguments ----------


def _date_arg(text: str) -> date:
    try:
        return parse_date(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _add_config_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--env", default="dev", help="Config environment (dev, prod).")
    p.add_argument("--profile", default="default", help="Config profile.")
    p.add_argument("--config", help="Extra YAML config merged over the packaged one.")
    p.add_argument(
        "--set",
        dest="overrides",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Config override in dot notation (repeatable).",
    )
    p.add_argument("--debug", action="store_true", help="Verbose logging.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mxm-bondscreen",
        description="Screen exchange-traded bonds by tax-adjusted yield.",
    )
    parser.add_argument("--version", action="version", version=__version__)
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Download, merge, filter and rank bonds.")
    _add_config_args(run)
    run.add_argument("--types", help="Comma-separated bond types (gov,mun,corp,euro).")
    run.add_argument(
        "--date", type=_date_arg, help="Statistics date (YYYY-MM-DD or DD.MM.YYYY)."
    )
    run.add_argument("--output", help="Text report path.")
    run.add_argument("--json", dest="json_output", help="JSON report path.")
    run.add_argument(
        "--no-details", action="store_true", help="Skip detail-page enrichment."
    )

    calc = sub.add_parser("calc", help="Yield of a single bond from given figures.")
    _add_config_args(calc)
    calc.add_argument(
        "--maturity-date",
        type=_date_arg,
        required=True,
        help="When you want to sell the bond.",
    )
    calc.add_argument("--offer-date", type=_date_arg, help="Offer date, if any.")
    calc.add_argument(
        "--commission", type=float, help="Commission percent (default from config)."
    )
    calc.add_argument("--clean-price", type=float, default=1000.0)
    calc.add_argument(
        "--clean-price-percent",
        type=float,
        default=0.0,
        help="Clean price in percent of nominal (takes precedence when non-zero).",
    )
    calc.add_argument("--nominal", type=float, default=1000.0)
    calc.add_argument("--accrued-coupon", type=float, default=0.0)
    calc.add_argument("--coupon-interest", type=float, default=0.0)
    calc.add_argument("--type", dest="bond_type", default="corp")
    calc.add_argument("--count", type=int, default=1, help="Number of bonds.")
    return parser


def _load(args: argparse.Namespace, extra: Sequence[str] = ()) -> DictConfig:
    return load_config(
        args.env,
        args.profile,
        config_file=args.config,
        overrides=[*args.overrides, *extra],
    )


# ---------- Commands ----------


def _print_summary(result: ScreenResult) -> None:
    table = Table(title=f"Screen summary (statistics {result.statistics_date})")
    table.add_column("Step", style="cyan")
    table.add_column("Count", justify="right")

    for bond_type, stats in result.market_tables.items():
        table.add_row(
            f"market table {bond_type}", f"{stats.accepted} ({stats.skipped} skipped)"
        )
    table.add_row("listing entries", str(result.listing_size))
    table.add_row("statistics names", str(result.statistics_size))
    table.add_row("merged", str(result.merge.merged))
    table.add_row("listing not found", str(result.merge.listing_not_found))
    table.add_row("statistics not found", str(result.merge.statistics_not_found))
    table.add_row("priced", str(result.pricing.priced))
    table.add_row("undefined yield", str(result.pricing.undefined_yield))
    if result.enrich is not None:
        table.add_row("enriched", str(result.enrich.enriched))
        table.add_row("enrichment failed", str(result.enrich.failed))
    table.add_row("filtered out", str(result.filters.dropped))
    table.add_row("selected", str(len(result.bonds)), style="bold green")
    console.print(table)

    for path in (result.text_path, result.json_path):
        if path is not None:
            console.print(f"[cyan]Report:[/cyan] {path}")


def cmd_run(args: argparse.Namespace) -> int:
    extra: list[str] = []
    if args.types:
        extra.append(f"screen.bond_types={args.types}")
    if args.date:
        extra.append(f"screen.statistics_date={args.date:%d.%m.%Y}")
    if args.output:
        extra.append(f"screen.output.text_path={args.output}")
    if args.json_output:
        extra.append(f"screen.output.json_path={args.json_output}")
    if args.no_details:
        extra.append("screen.enrich_details=false")

    cfg = _load(args, extra)
    settings = load_screen_settings(cfg)
    result = run_screen(settings, adapter_factory_from_config(cfg))
    _print_summary(result)
    return 0


def cmd_calc(args: argparse.Namespace, now: Optional[datetime] = None) -> int:
    if args.count < 1:
        raise ConfigError("--count must be >= 1")
    settings = load_screen_settings(_load(args))
    try:
        bond_type = BondType.parse(args.bond_type)
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc

    record = BondRecord(
        type=bond_type,
        isin="-",
        nominal=args.nominal,
        coupon_interest=args.coupon_interest,
        accrued_interest=args.accrued_coupon,
        clean_price=args.clean_price,
        clean_price_percent=args.clean_price_percent,
        maturity_date=args.maturity_date,
        offer_date=args.offer_date,
    )
    commission = (
        args.commission if args.commission is not None else settings.commission_percent
    )
    apply_yields(record, commission, now or datetime.now(), settings.conventions)

    console.print(format_bond(record), markup=False, highlight=False, soft_wrap=True)
    console.print(
        f"Cost total: {record.dirty_price * args.count:.3f}",
        markup=False,
        highlight=False,
    )
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.debug)
    try:
        if args.command == "calc":
            return cmd_calc(args)
        return cmd_run(args)
    except (BondScreenError, ConfigError, OSError, ValueError) as exc:
        logger.error("%s", exc)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
