# src/tradejournal/__main__.py
"""
Punto de entrada del paquete `tradejournal`.

Resumen:
1) CLI + YAML → config efectiva (CLI > YAML > settings).
2) Store local del usuario (`TradeStore`) en el data_dir resuelto.
3) Subcomandos:
   - add       : registrar un trade completo (validado); sin --asset-type/--strategy
                 se reutilizan los del último trade del mismo ticker.
   - quick     : registrar un trade solo con su P&L.
   - history   : historial (más reciente primero) con P&L por trade.
   - dashboard : KPIs, curva de equity y P&L por activo (IDR vía tipo de cambio).
   - delete    : borrar un trade por id.
   - template  : último trade registrado de un ticker.
   - export    : trades.csv + equity_curve.csv + summary.json + run_manifest.json.
"""

from __future__ import annotations

import argparse
import json
import logging
import subprocess
from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from uuid import uuid4

import yaml

from . import settings
from .analytics import calculate_pnl
from .currency import RateProvider
from .dashboard import AnalyticsFeed
from .errors import TradeNotFoundError, TradeValidationError
from .presentation import (
    equity_chart_rows,
    format_currency_idr,
    format_currency_usd,
    format_datetime,
    kpi_cards,
)
from .report import export_report
from .store import TradeStore
from .validation import quick_trade_input, validate_trade_input

logger = logging.getLogger(__name__)

# --------------------------------------------------------------------------------------
# Logging
# --------------------------------------------------------------------------------------


def _setup_logging(loglevel: str = "INFO", logfile: Path | None = None) -> None:
    level = getattr(logging, loglevel.upper(), logging.INFO)
    fmt = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    logging.basicConfig(level=level, format=fmt, datefmt=datefmt)
    if logfile is not None:
        try:
            fh = logging.FileHandler(logfile)
        except OSError as e:
            logger.warning("No se pudo crear FileHandler: %s", e)
            return
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(fmt=fmt, datefmt=datefmt))
        logging.getLogger().addHandler(fh)


# --------------------------------------------------------------------------------------
# Config (YAML + CLI)
# --------------------------------------------------------------------------------------


def _load_yaml_config(path: str | Path | None) -> dict[str, Any]:
    if path is None:
        return {}
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"No existe el archivo de configuración: {p}")
    with p.open("r", encoding="utf-8") as fh:
        cfg = yaml.safe_load(fh) or {}
    if not isinstance(cfg, dict):
        raise ValueError("El YAML debe tener un objeto dict en la raíz.")
    return cfg


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="tradejournal", description="tradejournal – journal de trades")
    p.add_argument("--config", type=str, default=None, help="Ruta a YAML (configs/journal.yaml)")
    p.add_argument("--user", help=f"Usuario (default settings.DEFAULT_USER={settings.DEFAULT_USER})")
    p.add_argument("--data-dir", help=f"Directorio de datos (default={settings.DATA_DIR})")
    p.add_argument("--loglevel", default=None, help="Nivel log (DEBUG|INFO|WARNING|ERROR)")
    sub = p.add_subparsers(dest="command", required=True)

    add = sub.add_parser("add", help="Registrar un trade completo")
    add.add_argument("--ticker", required=True)
    add.add_argument("--asset-type", choices=["Stock", "Crypto", "Forex"])
    add.add_argument("--position", choices=["Long", "Short"], default="Long")
    add.add_argument("--entry", dest="entry_price", required=True)
    add.add_argument("--exit", dest="exit_price", required=True)
    add.add_argument("--size", dest="position_size", required=True)
    add.add_argument("--commission", default="0")
    add.add_argument("--open", dest="open_date")
    add.add_argument("--close", dest="close_date")
    add.add_argument("--strategy")
    add.add_argument("--notes", dest="journal_notes")
    add.add_argument("--rating", dest="execution_rating")

    quick = sub.add_parser("quick", help="Registrar un trade solo con su P&L")
    quick.add_argument("--ticker", required=True)
    quick.add_argument("--position", choices=["Long", "Short"], default="Long")
    quick.add_argument("--pnl", required=True)
    quick.add_argument("--notes", dest="journal_notes")

    sub.add_parser("history", help="Historial de trades")

    dash = sub.add_parser("dashboard", help="KPIs y curvas")
    dash.add_argument("--no-rate", action="store_true", help="No descargar tipo de cambio")

    delete = sub.add_parser("delete", help="Borrar un trade")
    delete.add_argument("trade_id")

    tpl = sub.add_parser("template", help="Último trade de un ticker")
    tpl.add_argument("ticker")

    exp = sub.add_parser("export", help="Exportar reportes")
    exp.add_argument("--output-dir", default=None)
    exp.add_argument("--no-rate", action="store_true", help="No descargar tipo de cambio")
    return p


def _coerce_bool(x: Any, default: bool) -> bool:
    if x is None:
        return default
    return str(x).strip().lower() in {"1", "true", "yes", "y", "on"}


def _resolve_config(args: argparse.Namespace) -> dict[str, Any]:
    # 1) YAML (si existe)
    config_path = args.config
    if config_path is None:
        default_cfg = Path("configs/journal.yaml")
        config_path = str(default_cfg) if default_cfg.exists() else None
    ycfg: dict[str, Any] = _load_yaml_config(config_path) if config_path else {}

    # 2) Defaults desde settings + 3) YAML
    currency = ycfg.get("currency", {}) or {}
    user = ycfg.get("user", settings.DEFAULT_USER)
    data_dir = ycfg.get("data_dir", str(settings.DATA_DIR))
    reports_dir = ycfg.get("reports_dir", str(settings.REPORTS_DIR))
    loglevel = ycfg.get("loglevel", "INFO")
    rate_fetch = _coerce_bool(currency.get("fetch"), settings.RATE_FETCH_ENABLED)
    fallback_rate = float(currency.get("fallback_rate", settings.FALLBACK_IDR_RATE))

    # 4) Overrides CLI
    user = args.user or user
    data_dir = args.data_dir or data_dir
    loglevel = args.loglevel or loglevel
    if getattr(args, "no_rate", False):
        rate_fetch = False

    return {
        "user": str(user),
        "data_dir": str(data_dir),
        "reports_dir": str(reports_dir),
        "currency": {"fetch": rate_fetch, "fallback_rate": fallback_rate},
        "loglevel": loglevel,
        "raw_yaml": ycfg,
        "config_path": config_path,
    }


# --------------------------------------------------------------------------------------
# Run manifest (trazabilidad de exportaciones)
# --------------------------------------------------------------------------------------


def _git_commit_hash() -> str | None:
    try:
        out = subprocess.check_output(
            ["git", "rev-parse", "--short", "HEAD"], stderr=subprocess.STDOUT
        )
    except (OSError, subprocess.CalledProcessError):
        return None
    return out.decode("utf-8").strip()


def _write_run_manifest(
    reports_dir: Path,
    run_id: str,
    cfg_effective: dict[str, Any],
    summary: dict[str, Any],
) -> Path:
    manifest: dict[str, Any] = {
        "id": run_id,
        "timestamp_utc": datetime.now(tz=UTC).isoformat(),
        "git_commit": _git_commit_hash(),
        "config_path": cfg_effective.get("config_path"),
        "config_effective": {
            "user": cfg_effective.get("user"),
            "data_dir": cfg_effective.get("data_dir"),
            "currency": cfg_effective.get("currency"),
        },
        "outputs": {
            "trades_csv": str(reports_dir / "trades.csv"),
            "equity_curve_csv": str(reports_dir / "equity_curve.csv"),
            "summary_json": str(reports_dir / "summary.json"),
        },
        "metrics": summary,
    }
    out_path = reports_dir / "run_manifest.json"
    with out_path.open("w", encoding="utf-8") as fh:
        json.dump(manifest, fh, indent=2, ensure_ascii=False)
    logger.info("Run manifest escrito en %s", out_path)
    return out_path


# --------------------------------------------------------------------------------------
# Subcomandos
# --------------------------------------------------------------------------------------


def _display_rate(cfg: dict[str, Any]) -> float:
    fallback = cfg["currency"]["fallback_rate"]
    if not cfg["currency"]["fetch"]:
        return fallback
    quote = RateProvider(fallback_rate=fallback).get_rate()
    if quote.error is not None:
        print(f"(tipo de cambio no disponible, se usa {quote.rate:,.2f})")
    return quote.rate


def _cmd_add(store: TradeStore, user: str, args: argparse.Namespace) -> int:
    data = {
        k: getattr(args, k)
        for k in (
            "ticker",
            "asset_type",
            "position",
            "entry_price",
            "exit_price",
            "position_size",
            "commission",
            "open_date",
            "close_date",
            "strategy",
            "journal_notes",
            "execution_rating",
        )
    }
    # Plantilla: tipo de activo y estrategia del último trade del mismo ticker
    last = store.latest_trade_for_ticker(user, args.ticker)
    if last is not None:
        if not data["asset_type"] and last.asset_type:
            data["asset_type"] = last.asset_type
            print(f"Tipo de activo tomado del último trade: {last.asset_type}")
        if not data["strategy"] and last.strategy:
            data["strategy"] = last.strategy
            print(f"Estrategia tomada del último trade: {last.strategy}")

    trade = store.add_trade(user, validate_trade_input(data))
    print(f"Trade guardado: {trade.id}")
    return 0


def _cmd_quick(store: TradeStore, user: str, args: argparse.Namespace) -> int:
    data = quick_trade_input(args.ticker, args.position, args.pnl, journal_notes=args.journal_notes)
    trade = store.add_trade(user, data)
    print(f"Trade guardado: {trade.id}")
    return 0


def _cmd_history(store: TradeStore, user: str) -> int:
    trades = store.list_trades(user, order_by="created_at", descending=True)
    if not trades:
        print("Sin trades.")
        return 0
    for t in trades:
        print(
            f"{t.id}  {format_datetime(t.close_date):>20s}  {t.ticker:<10s} "
            f"{t.position:<5s}  {format_currency_usd(calculate_pnl(t)):>14s}  {t.strategy or ''}"
        )
    return 0


def _cmd_dashboard(store: TradeStore, user: str, cfg: dict[str, Any]) -> int:
    feed = AnalyticsFeed(store, user)
    try:
        summary = feed.summary
        if summary is None or summary.is_empty:
            print("Sin trades cerrados todavía.")
            return 0
        rate = _display_rate(cfg)

        print("\n=== DASHBOARD ===")
        for card in kpi_cards(summary, rate):
            extra = f"  ({card.sub_value})" if card.sub_value else ""
            print(f"{card.title:25s}: {card.value}{extra}")

        print("\nCurva de equity:")
        for row in equity_chart_rows(summary, rate):
            print(f"  {row['date']:>7s}  {format_currency_idr(row['equity'])}")

        print("\nP&L por activo:")
        for a in summary.pnl_per_asset:
            print(f"  {a.ticker:<10s} {format_currency_idr(a.pnl * rate)}")
    finally:
        feed.close()
    return 0


def _cmd_template(store: TradeStore, user: str, ticker: str) -> int:
    last = store.latest_trade_for_ticker(user, ticker)
    if last is None:
        print(f"No hay trades previos de {ticker.upper()}.")
        return 0
    print(f"asset_type={last.asset_type or ''} strategy={last.strategy or ''}")
    return 0


def _cmd_export(store: TradeStore, user: str, cfg: dict[str, Any], args: argparse.Namespace) -> int:
    run_id = str(uuid4())
    if args.output_dir:
        reports_dir = Path(args.output_dir)
    else:
        reports_dir = settings.generate_report_dir(user, base_dir=Path(cfg["reports_dir"]))
    reports_dir.mkdir(parents=True, exist_ok=True)
    _setup_logging(loglevel=cfg["loglevel"], logfile=reports_dir / "log.txt")

    rate = _display_rate(cfg)
    summary = export_report(store.list_trades(user), reports_dir, rate=rate)
    _write_run_manifest(reports_dir, run_id, cfg, summary)

    print("\nMétricas exportadas:")
    for k, v in summary.items():
        if not isinstance(v, dict):
            print(f"{k:25s}: {v}")
    print(f"\n[tradejournal] run_id: {run_id} -> {reports_dir}")
    return 0


# --------------------------------------------------------------------------------------
# Programa principal
# --------------------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    cfg = _resolve_config(args)
    _setup_logging(loglevel=cfg["loglevel"])

    user = cfg["user"]
    store = TradeStore(cfg["data_dir"])
    logger.debug("Config efectiva: user=%s data_dir=%s", user, cfg["data_dir"])

    try:
        if args.command == "add":
            return _cmd_add(store, user, args)
        if args.command == "quick":
            return _cmd_quick(store, user, args)
        if args.command == "history":
            return _cmd_history(store, user)
        if args.command == "dashboard":
            return _cmd_dashboard(store, user, cfg)
        if args.command == "delete":
            store.delete_trade(user, args.trade_id)
            print(f"Trade {args.trade_id} eliminado.")
            return 0
        if args.command == "template":
            return _cmd_template(store, user, args.ticker)
        if args.command == "export":
            return _cmd_export(store, user, cfg, args)
    except TradeValidationError as e:
        print("Trade no válido:")
        for field_name, msg in e.errors.items():
            print(f"  - {field_name}: {msg}")
        return 2
    except TradeNotFoundError as e:
        print(str(e))
        return 1
    except Exception:
        logger.exception("Error ejecutando '%s'", args.command)
        raise
    raise AssertionError(f"subcomando no soportado: {args.command}")


if __name__ == "__main__":
    raise SystemExit(main())
