# src/tradejournal/presentation.py
"""
Capa de presentación del dashboard: conversión de divisa y formateo.

Todo lo de aquí es **display**: se aplica al `TradeAnalyticsSummary` DESPUÉS de
calcularlo, nunca dentro de la analítica.

- `convert_summary(summary, rate)`: escala los campos monetarios (P&L neto,
  ganancias, pérdidas, medias, curva de equity y P&L por activo). `win_rate` y
  `profit_factor` son adimensionales y no cambian.
- Formateadores: IDR ("Rp 1.234.567"), USD ("$1,234.56"), porcentaje,
  profit factor ("∞" si es infinito) y fechas cortas en español-indonesio
  ("5 Jan", "17 Agu").
- `kpi_cards(summary, rate)`: filas KPI en el orden del dashboard.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Any

import pandas as pd

from . import settings
from .analytics import AssetPnl, EquityPoint, TradeAnalyticsSummary
from .trades import to_timestamp

# Abreviaturas de mes tal y como las muestra el locale id-ID
_MONTHS_ID = ("Jan", "Feb", "Mar", "Apr", "Mei", "Jun", "Jul", "Agu", "Sep", "Okt", "Nov", "Des")


# --------------------------------------------------------------------------------------
# Conversión de divisa
# --------------------------------------------------------------------------------------
def convert_summary(summary: TradeAnalyticsSummary, rate: float) -> TradeAnalyticsSummary:
    """Nuevo resumen con los importes multiplicados por `rate` (el original no se toca)."""
    rate = float(rate)
    return replace(
        summary,
        total_net_pnl=summary.total_net_pnl * rate,
        avg_win=summary.avg_win * rate,
        avg_loss=summary.avg_loss * rate,
        total_gains=summary.total_gains * rate,
        total_losses=summary.total_losses * rate,
        equity_curve=tuple(EquityPoint(p.date, p.equity * rate) for p in summary.equity_curve),
        pnl_per_asset=tuple(AssetPnl(a.ticker, a.pnl * rate) for a in summary.pnl_per_asset),
    )


# --------------------------------------------------------------------------------------
# Formateo numérico
# --------------------------------------------------------------------------------------
def _grouped(value: float, decimals: int, thousands: str, decimal_sep: str) -> tuple[str, str]:
    """Devuelve (signo, número agrupado). Un valor que redondea a 0 no lleva signo."""
    text = f"{abs(value):,.{decimals}f}"
    if float(text.replace(",", "")) == 0:
        sign = ""
    else:
        sign = "-" if value < 0 else ""
    text = text.replace(",", "\0").replace(".", decimal_sep).replace("\0", thousands)
    return sign, text


def format_currency_idr(value: float, decimals: int = 0) -> str:
    """Rupias al estilo id-ID: separador de miles '.', decimal ','."""
    sign, text = _grouped(value, decimals, thousands=".", decimal_sep=",")
    return f"{sign}Rp {text}"


def format_currency_usd(value: float, decimals: int = 2) -> str:
    sign, text = _grouped(value, decimals, thousands=",", decimal_sep=".")
    return f"{sign}${text}"


def format_percent(value: float) -> str:
    return f"{value:.2f}%"


def format_profit_factor(value: float) -> str:
    return f"{value:.2f}" if math.isfinite(value) else "∞"


# --------------------------------------------------------------------------------------
# Fechas
# --------------------------------------------------------------------------------------
def _local(value: Any, tz: str | None) -> pd.Timestamp | None:
    ts = to_timestamp(value)
    if ts is None:
        return None
    return ts.tz_convert(tz or settings.DISPLAY_TZ)


def format_short_date(value: Any, tz: str | None = None) -> str:
    """Etiqueta del eje X de la curva de equity: "5 Jan"."""
    ts = _local(value, tz)
    if ts is None:
        return ""
    return f"{ts.day} {_MONTHS_ID[ts.month - 1]}"


def format_datetime(value: Any, tz: str | None = None) -> str:
    """Fecha completa para el historial: "5 Jan 2025, 14.30"."""
    ts = _local(value, tz)
    if ts is None:
        return "-"
    return f"{ts.day} {_MONTHS_ID[ts.month - 1]} {ts.year}, {ts.hour:02d}.{ts.minute:02d}"


# --------------------------------------------------------------------------------------
# KPIs del dashboard
# --------------------------------------------------------------------------------------
@dataclass(frozen=True)
class KpiCard:
    key: str
    title: str
    value: str
    sub_value: str | None = None


def kpi_cards(summary: TradeAnalyticsSummary, rate: float) -> list[KpiCard]:
    """
    Filas KPI del dashboard. Importes en IDR (convertidos con `rate`) y, para los
    totales, el importe original en USD como subvalor.
    """
    s = summary

    def idr(v: float) -> str:
        return format_currency_idr(v * rate)

    return [
        KpiCard("total_net_pnl", "Equity (P&L neto)", idr(s.total_net_pnl), format_currency_usd(s.total_net_pnl)),
        KpiCard("total_gains", "Ganancias totales", idr(s.total_gains), format_currency_usd(s.total_gains)),
        KpiCard("total_losses", "Pérdidas totales", idr(s.total_losses), format_currency_usd(s.total_losses)),
        KpiCard("win_rate", "Win Rate", format_percent(s.win_rate)),
        KpiCard("profit_factor", "Profit Factor", format_profit_factor(s.profit_factor)),
        KpiCard("avg_win", "Ganancia media", idr(s.avg_win)),
        KpiCard("avg_loss", "Pérdida media", idr(s.avg_loss)),
    ]


def equity_chart_rows(summary: TradeAnalyticsSummary, rate: float = 1.0) -> list[dict[str, Any]]:
    """Puntos de la curva listos para un gráfico: fecha corta + equity convertido."""
    return [
        {"date": format_short_date(p.date), "equity": p.equity * rate} for p in summary.equity_curve
    ]
