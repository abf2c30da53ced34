# src/tradejournal/report.py
"""
Historial de trades y exportación de reportes (`trades.csv`, `equity_curve.csv`, `summary.json`).

Flujo general (usado desde __main__.py):
----------------------------------------
1) `trades_dataframe(trades)`: historial como DataFrame (más reciente primero por
   `created_at`), con el P&L calculado por trade y `schema_version`.
2) `equity_curve_dataframe(summary)`: curva de equity del resumen como DataFrame.
3) `export_report(trades, output_dir, rate)`: calcula la analítica y escribe los
   tres ficheros en `output_dir`. Si se pasa `rate`, el JSON incluye además los
   importes convertidos a la divisa de display.

Notas
-----
- JSON no admite inf/NaN: los valores no finitos (profit_factor = inf) se
  guardan como null.
- El contrato de columnas del CSV vive en `const.TRADE_COLUMNS` y lo verifican
  los tests (tests/test_report_schema.py).
"""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import pandas as pd

from . import settings
from .analytics import TradeAnalyticsSummary, calculate_analytics, calculate_pnl
from .const import SCHEMA_VERSION, TRADE_COLUMNS
from .presentation import convert_summary
from .trades import Trade

logger = logging.getLogger(__name__)


def trades_dataframe(trades: Iterable[Trade]) -> pd.DataFrame:
    """
    Historial de trades: una fila por trade, columnas `TRADE_COLUMNS`, ordenado por
    `created_at` descendente (los trades sin `created_at` al final).

    Si no hay trades devuelve un DataFrame vacío con la cabecera completa.
    """
    rows = []
    for t in trades:
        row = {c: getattr(t, c, None) for c in TRADE_COLUMNS if hasattr(t, c)}
        row["pnl"] = calculate_pnl(t)
        row["schema_version"] = SCHEMA_VERSION
        rows.append(row)

    if not rows:
        return pd.DataFrame(columns=TRADE_COLUMNS)

    df = pd.DataFrame(rows).reindex(columns=TRADE_COLUMNS)
    df["created_at"] = pd.to_datetime(df["created_at"], utc=True)
    return df.sort_values("created_at", ascending=False, na_position="last", kind="mergesort").reset_index(drop=True)


def equity_curve_dataframe(summary: TradeAnalyticsSummary) -> pd.DataFrame:
    """Curva de equity: columnas ["date", "equity"] en orden de cierre."""
    if not summary.equity_curve:
        return pd.DataFrame(columns=["date", "equity"])
    return pd.DataFrame(
        [(p.date, p.equity) for p in summary.equity_curve], columns=["date", "equity"]
    )


def _finite_or_none(x: Any) -> Any:
    if isinstance(x, float) and not math.isfinite(x):
        return None
    return x


def summary_json(summary: TradeAnalyticsSummary, n_trades: int, n_closed: int) -> dict[str, Any]:
    """Métricas escalares del resumen, redondeadas y sin valores no finitos."""
    return {
        "n_trades": n_trades,
        "n_closed_trades": n_closed,
        "total_net_pnl": round(summary.total_net_pnl, 2),
        "win_rate": round(summary.win_rate, 4),
        "profit_factor": _finite_or_none(round(summary.profit_factor, 4)),
        "avg_win": round(summary.avg_win, 2),
        "avg_loss": round(summary.avg_loss, 2),
        "total_gains": round(summary.total_gains, 2),
        "total_losses": round(summary.total_losses, 2),
        "pnl_per_asset": {a.ticker: round(a.pnl, 2) for a in summary.pnl_per_asset},
        "base_currency": settings.BASE_CURRENCY,
        "schema_version": SCHEMA_VERSION,
    }


def export_report(
    trades: Iterable[Trade],
    output_dir: str | Path,
    rate: float | None = None,
) -> dict[str, Any]:
    """
    Escribe `trades.csv`, `equity_curve.csv` y `summary.json` en `output_dir`.

    Devuelve el dict de `summary.json`.
    """
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    trades = list(trades)
    summary = calculate_analytics(trades)

    trades_df = trades_dataframe(trades)
    trades_path = out / "trades.csv"
    trades_df.to_csv(trades_path, index=False)
    logger.info("Trades exportados a %s (%d filas)", trades_path, len(trades_df))

    eq_df = equity_curve_dataframe(summary)
    equity_path = out / "equity_curve.csv"
    eq_df.to_csv(equity_path, index=False)
    if eq_df.empty:
        logger.info("Equity curve vacía; se escribe solo la cabecera en %s", equity_path)
    else:
        logger.info("Equity curve escrita en %s", equity_path)

    data = summary_json(summary, n_trades=len(trades), n_closed=len(summary.equity_curve))
    if rate is not None:
        converted = convert_summary(summary, rate)
        data["display"] = {
            "currency": settings.DISPLAY_CURRENCY,
            "rate": float(rate),
            "total_net_pnl": round(converted.total_net_pnl, 2),
            "total_gains": round(converted.total_gains, 2),
            "total_losses": round(converted.total_losses, 2),
            "avg_win": round(converted.avg_win, 2),
            "avg_loss": round(converted.avg_loss, 2),
        }

    summary_path = out / "summary.json"
    with summary_path.open("w", encoding="utf-8") as fh:
        json.dump(data, fh, indent=4, ensure_ascii=False)
    logger.info("Resumen exportado a %s", summary_path)
    return data
