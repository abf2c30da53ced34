# src/tradejournal/validation.py
"""
Validación de la entrada de trades (formulario detallado y entrada rápida).

Objetivos del módulo
--------------------
1) `validate_trade_input(data)`: valida un trade completo ("modo avanzado") y
   devuelve un dict normalizado listo para `TradeStore.add_trade`.
   - ticker no vacío (se guarda en MAYÚSCULAS)
   - asset_type obligatorio y dentro de ASSET_TYPES
   - position dentro de POSITIONS
   - entry_price / exit_price / position_size obligatorios y > 0
   - exit_price != entry_price (un trade de distancia cero se rechaza aquí, no en la analítica)
   - commission obligatoria y >= 0
   - close_date estrictamente posterior a open_date (si hay ambas)
   - execution_rating entero en [1, 5] (si se indica)
2) `quick_trade_input(...)`: "modo simple", el usuario solo conoce el P&L.
   Se sintetizan precios (entry=1, size=1, exit=1±pnl) para que
   `calculate_pnl` reproduzca ese P&L (salvo pnl = ∓1 contra la posición, ver docstring).

Decisiones
----------
- Se acumulan TODOS los errores de campo y se lanzan juntos en un
  `TradeValidationError` (campo -> mensaje), igual que un formulario.
- La analítica no depende de esta validación: tolera registros mal formados.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from typing import Any

import pandas as pd

from .const import ASSET_TYPES, POSITIONS, RATING_MAX, RATING_MIN
from .errors import TradeValidationError
from .trades import RECORD_KEYS, to_timestamp

logger = logging.getLogger(__name__)


def _value(data: Mapping[str, Any], name: str) -> Any:
    camel = RECORD_KEYS.get(name, name)
    if camel in data:
        return data[camel]
    return data.get(name)


def _to_float(value: Any) -> float | None:
    """Convierte a float; None si está vacío. Lanza ValueError si no es numérico."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    x = float(value)
    if not math.isfinite(x):
        raise ValueError(f"valor no finito: {value!r}")
    return x


def _text(value: Any) -> str | None:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def _positive(
    data: Mapping[str, Any], name: str, label: str, errors: dict[str, str]
) -> float | None:
    try:
        x = _to_float(_value(data, name))
    except (TypeError, ValueError):
        errors[name] = f"{label} debe ser numérico."
        return None
    if x is None:
        errors[name] = f"{label} es obligatorio y debe ser positivo."
        return None
    if x <= 0:
        errors[name] = f"{label} debe ser positivo."
        return None
    return x


def _date(data: Mapping[str, Any], name: str, label: str, errors: dict[str, str]):
    raw = _value(data, name)
    if raw is None or raw == "":
        return None
    ts = to_timestamp(raw)
    if ts is None:
        errors[name] = f"{label} no es una fecha válida."
    return ts


def _rating(data: Mapping[str, Any], errors: dict[str, str]) -> int | None:
    raw = _value(data, "execution_rating")
    if raw is None or raw == "":
        return None
    try:
        x = float(raw)
    except (TypeError, ValueError):
        errors["execution_rating"] = "La valoración debe ser un número entero."
        return None
    if not x.is_integer() or not (RATING_MIN <= x <= RATING_MAX):
        errors["execution_rating"] = (
            f"La valoración debe ser un entero entre {RATING_MIN} y {RATING_MAX}."
        )
        return None
    return int(x)


def validate_trade_input(data: Mapping[str, Any]) -> dict[str, Any]:
    """
    Valida un trade del formulario detallado.

    `data` puede usar claves snake_case o camelCase. Devuelve un dict snake_case
    normalizado (ticker en mayúsculas, números como float, fechas como
    pd.Timestamp UTC). Si hay errores lanza `TradeValidationError` con todos ellos.
    """
    errors: dict[str, str] = {}

    ticker = _text(_value(data, "ticker"))
    if ticker is None:
        errors["ticker"] = "El ticker no puede estar vacío."

    asset_type = _text(_value(data, "asset_type"))
    if asset_type is None:
        errors["asset_type"] = "El tipo de activo es obligatorio."
    elif asset_type not in ASSET_TYPES:
        errors["asset_type"] = f"Tipo de activo desconocido; usa uno de {', '.join(ASSET_TYPES)}."

    position = _text(_value(data, "position")) or "Long"
    if position not in POSITIONS:
        errors["position"] = f"La posición debe ser {' o '.join(POSITIONS)}."

    entry = _positive(data, "entry_price", "El precio de entrada", errors)
    exit_ = _positive(data, "exit_price", "El precio de salida", errors)
    size = _positive(data, "position_size", "El tamaño de posición", errors)
    if entry is not None and exit_ is not None and entry == exit_:
        errors["exit_price"] = "El precio de salida no puede ser igual al de entrada."

    try:
        commission = _to_float(_value(data, "commission"))
    except (TypeError, ValueError):
        commission = None
        errors["commission"] = "La comisión debe ser numérica."
    else:
        if commission is None:
            errors["commission"] = "La comisión es obligatoria (usa 0 si no hubo)."
        elif commission < 0:
            errors["commission"] = "La comisión no puede ser negativa."

    open_date = _date(data, "open_date", "La fecha de apertura", errors)
    close_date = _date(data, "close_date", "La fecha de cierre", errors)
    if open_date is not None and close_date is not None and close_date <= open_date:
        errors["close_date"] = "La fecha de cierre debe ser posterior a la de apertura."

    rating = _rating(data, errors)

    if errors:
        logger.debug("Trade rechazado: %s", errors)
        raise TradeValidationError(errors)

    return {
        "ticker": ticker.upper(),
        "asset_type": asset_type,
        "position": position,
        "entry_price": entry,
        "exit_price": exit_,
        "position_size": size,
        "commission": commission,
        "open_date": open_date,
        "close_date": close_date,
        "strategy": _text(_value(data, "strategy")),
        "journal_notes": _text(_value(data, "journal_notes")),
        "execution_rating": rating,
    }


def quick_trade_input(
    ticker: str,
    position: str,
    pnl: Any,
    journal_notes: str | None = None,
    close_date: Any = None,
) -> dict[str, Any]:
    """
    Entrada rápida: solo ticker, posición y P&L.

    Se guardan precios sintéticos (entry=1, size=1) con exit = 1 + pnl (Long) o
    1 - pnl (Short), comisión 0 y tipo de activo Stock. `close_date` por defecto
    es "ahora" (UTC).

    Con pnl = -1 (Long) o +1 (Short) el exit sintetizado es 0 y `calculate_pnl`
    devuelve 0; con pnl = 0 se guarda exit == entry.
    """
    errors: dict[str, str] = {}
    tick = _text(ticker)
    if tick is None:
        errors["ticker"] = "El ticker no puede estar vacío."
    pos = _text(position) or "Long"
    if pos not in POSITIONS:
        errors["position"] = f"La posición debe ser {' o '.join(POSITIONS)}."
    try:
        value = _to_float(pnl)
    except (TypeError, ValueError):
        value = None
    if value is None:
        errors["pnl"] = "El P&L es obligatorio y debe ser numérico."
    if errors:
        raise TradeValidationError(errors)

    entry_price = 1.0
    position_size = 1.0
    if pos == "Long":
        exit_price = entry_price + value / position_size
    else:
        exit_price = entry_price - value / position_size

    closed = to_timestamp(close_date) if close_date is not None else None
    if closed is None:
        closed = pd.Timestamp.now(tz="UTC")

    return {
        "ticker": tick.upper(),
        "asset_type": "Stock",
        "position": pos,
        "entry_price": entry_price,
        "exit_price": exit_price,
        "position_size": position_size,
        "commission": 0.0,
        "open_date": None,
        "close_date": closed,
        "strategy": None,
        "journal_notes": _text(journal_notes) or "",
        "execution_rating": None,
    }
