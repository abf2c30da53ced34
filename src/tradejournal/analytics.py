# src/tradejournal/analytics.py
"""
Analítica de rendimiento del journal: P&L por trade y resumen agregado.

Flujo general (usado desde dashboard.py, report.py y __main__.py):
------------------------------------------------------------------
1) Recibimos una colección **sin orden** de trades de UN usuario (objetos `Trade`
   o documentos tipo dict con claves camelCase/snake_case).
2) Descartamos los trades sin `close_date` (posiciones abiertas: P&L no realizado).
3) Calculamos el P&L de cada trade (`calculate_pnl`) y normalizamos su fecha de cierre.
4) Ordenamos por fecha de cierre ascendente (desempate por id) ⇒ el orden de
   entrada nunca cambia el resultado.
5) Agregamos:
   - total_net_pnl, total_gains, total_losses
   - win_rate (0-100), profit_factor, avg_win, avg_loss
   - equity_curve (P&L acumulado trade a trade)
   - pnl_per_asset (suma de P&L por ticker, en orden de primera aparición)

Decisiones
----------
- Funciones puras: sin I/O ni estado. Se recalcula todo en cada snapshot.
- Nunca lanzan excepción por datos mal formados: un campo numérico ausente o
  inválido hace que el trade aporte 0.
- Sin NaN: profit_factor = +inf si no hay ninguna pérdida (aunque tampoco haya
  ganancias); medias = 0 con el bucket vacío. Solo sin trades cerrados vale 0.
- Los trades con P&L exactamente 0 no son ganadores ni perdedores, pero SÍ
  cuentan en el denominador del win_rate.
- Todo en la divisa de los precios; la conversión de divisa es cosa de
  `presentation.convert_summary`.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Optional

import numpy as np
import pandas as pd

from .trades import RECORD_KEYS, to_timestamp

logger = logging.getLogger(__name__)


# --------------------------------------------------------------------------------------
# Estructuras de salida
# --------------------------------------------------------------------------------------
@dataclass(frozen=True)
class EquityPoint:
    """Punto de la curva de equity: fecha de cierre (UTC) y P&L acumulado hasta ese trade."""

    date: pd.Timestamp
    equity: float


@dataclass(frozen=True)
class AssetPnl:
    ticker: str
    pnl: float


@dataclass(frozen=True)
class TradeAnalyticsSummary:
    """
    Resumen de rendimiento derivado de los trades cerrados de un usuario.

    No tiene identidad propia ni se persiste: se recrea cada vez que cambia la
    colección de trades.
    """

    total_net_pnl: float = 0.0
    win_rate: float = 0.0
    profit_factor: float = 0.0
    avg_win: float = 0.0
    avg_loss: float = 0.0
    total_gains: float = 0.0
    total_losses: float = 0.0
    equity_curve: tuple[EquityPoint, ...] = field(default_factory=tuple)
    pnl_per_asset: tuple[AssetPnl, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return not self.equity_curve

    def to_dict(self) -> dict[str, Any]:
        """Vista plana (fechas ISO) para JSON/logging. profit_factor puede ser inf."""
        return {
            "total_net_pnl": self.total_net_pnl,
            "win_rate": self.win_rate,
            "profit_factor": self.profit_factor,
            "avg_win": self.avg_win,
            "avg_loss": self.avg_loss,
            "total_gains": self.total_gains,
            "total_losses": self.total_losses,
            "equity_curve": [
                {"date": p.date.isoformat(), "equity": p.equity} for p in self.equity_curve
            ],
            "pnl_per_asset": [{"ticker": a.ticker, "pnl": a.pnl} for a in self.pnl_per_asset],
        }


# --------------------------------------------------------------------------------------
# Acceso tolerante a campos (Trade o dict camelCase/snake_case)
# --------------------------------------------------------------------------------------
def _get(trade: Any, name: str) -> Any:
    if isinstance(trade, Mapping):
        camel = RECORD_KEYS.get(name, name)
        if camel in trade:
            return trade[camel]
        return trade.get(name)
    return getattr(trade, name, None)


def _num(value: Any) -> Optional[float]:
    """float finito o None (ausente, vacío, NaN, no numérico)."""
    if value is None or isinstance(value, bool):
        return None
    try:
        x = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(x):
        return None
    return x


# --------------------------------------------------------------------------------------
# P&L de un trade
# --------------------------------------------------------------------------------------
def calculate_pnl(trade: Any) -> float:
    """
    P&L realizado de un trade, en la divisa de sus precios.

      Long : (exit - entry) * size - commission
      Short: (entry - exit) * size - commission

    Si falta (o es 0 / no numérico) entry_price, exit_price o position_size,
    devuelve 0.0: un registro desconocido no aporta nada. La comisión ausente
    cuenta como 0. Cualquier posición distinta de "Long" se trata como Short.
    """
    entry = _num(_get(trade, "entry_price"))
    exit_ = _num(_get(trade, "exit_price"))
    size = _num(_get(trade, "position_size"))
    if not entry or not exit_ or not size:
        return 0.0
    commission = _num(_get(trade, "commission")) or 0.0

    if _get(trade, "position") == "Long":
        return (exit_ - entry) * size - commission
    return (entry - exit_) * size - commission


# --------------------------------------------------------------------------------------
# Resumen agregado
# --------------------------------------------------------------------------------------
def _closed_trades_frame(trades: Iterable[Any]) -> pd.DataFrame:
    """
    Pasos 1-3: filtra cerrados, enriquece con pnl/close_ts y ordena por fecha de cierre.

    Columnas: ["ticker", "pnl", "close_ts", "order_key"]
    """
    rows: list[dict[str, Any]] = []
    for t in trades:
        close_ts = to_timestamp(_get(t, "close_date"))
        if close_ts is None:
            continue
        trade_id = _get(t, "id")
        rows.append(
            {
                "ticker": _get(t, "ticker"),
                "pnl": float(calculate_pnl(t)),
                "close_ts": close_ts,
                "order_key": "" if trade_id is None else str(trade_id),
            }
        )

    if not rows:
        return pd.DataFrame(columns=["ticker", "pnl", "close_ts", "order_key"])

    df = pd.DataFrame(rows)
    # mergesort es estable: empates totales (mismo cierre y mismo id) conservan el orden de entrada
    return df.sort_values(["close_ts", "order_key"], kind="mergesort").reset_index(drop=True)


def calculate_analytics(trades: Iterable[Any] | None) -> TradeAnalyticsSummary:
    """
    Calcula el `TradeAnalyticsSummary` de una colección de trades (cualquier orden).

    Los trades sin fecha de cierre se ignoran por completo. Con cero trades
    cerrados devuelve un resumen vacío (todos los numéricos a 0).
    """
    df = _closed_trades_frame(trades or [])
    if df.empty:
        return TradeAnalyticsSummary()

    pnl = df["pnl"].to_numpy(dtype=float)
    n = len(pnl)
    wins = pnl[pnl > 0]
    losses = pnl[pnl < 0]

    total_net_pnl = float(pnl.sum())
    total_gains = float(wins.sum())
    total_losses = float(abs(losses.sum()))

    win_rate = 100.0 * len(wins) / n

    if total_losses > 0:
        profit_factor = total_gains / total_losses
    else:
        profit_factor = math.inf

    avg_win = total_gains / len(wins) if len(wins) else 0.0
    avg_loss = total_losses / len(losses) if len(losses) else 0.0

    # Curva de equity: suma acumulada en el orden de cierre
    equity = np.cumsum(pnl)
    equity_curve = tuple(
        EquityPoint(date=ts, equity=float(eq)) for ts, eq in zip(df["close_ts"], equity)
    )

    # P&L por ticker (sort=False => orden de primera aparición)
    per_asset = df.groupby("ticker", sort=False, dropna=False)["pnl"].sum()
    pnl_per_asset = tuple(AssetPnl(ticker=t, pnl=float(v)) for t, v in per_asset.items())

    logger.debug(
        "Analítica recalculada: trades=%d net=%.2f win_rate=%.2f pf=%s",
        n,
        total_net_pnl,
        win_rate,
        profit_factor,
    )

    return TradeAnalyticsSummary(
        total_net_pnl=total_net_pnl,
        win_rate=win_rate,
        profit_factor=profit_factor,
        avg_win=avg_win,
        avg_loss=avg_loss,
        total_gains=total_gains,
        total_losses=total_losses,
        equity_curve=equity_curve,
        pnl_per_asset=pnl_per_asset,
    )
