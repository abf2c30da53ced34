# src/tradejournal/trades.py
"""
Estructura básica que representa un trade registrado en el journal.

Cada vez que el usuario registra una operación (formulario detallado o entrada
rápida por P&L), el store crea un objeto `Trade` con los datos de la operación:
ticker, precios de entrada/salida, tamaño, comisión, fechas y campos de diario.

Los `Trade` se guardan en `TradeStore` como documentos JSON con claves camelCase
(`entryPrice`, `closeDate`, ...). `Trade.to_record()` / `Trade.from_record()`
hacen la conversión en ambos sentidos; `from_record` acepta también las claves
snake_case de los atributos.

Notas
-----
- Las fechas se normalizan a `pd.Timestamp` tz-aware en UTC (`to_timestamp`).
- El modelo NO valida nada: la validación de entrada vive en `validation.py`, y
  el motor de analítica (`analytics.py`) tolera registros mal formados.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields
from datetime import date, datetime
from typing import Any, Literal, Optional

import pandas as pd

AssetType = Literal["Stock", "Crypto", "Forex"]
Position = Literal["Long", "Short"]

# Atributo Python -> clave del documento guardado
RECORD_KEYS = {
    "asset_type": "assetType",
    "entry_price": "entryPrice",
    "exit_price": "exitPrice",
    "position_size": "positionSize",
    "open_date": "openDate",
    "close_date": "closeDate",
    "journal_notes": "journalNotes",
    "execution_rating": "executionRating",
    "user_id": "userId",
    "created_at": "createdAt",
}

_DATE_FIELDS = ("open_date", "close_date", "created_at")


def to_timestamp(value: Any) -> Optional[pd.Timestamp]:
    """
    Normaliza una fecha a `pd.Timestamp` UTC. Devuelve None si falta o no se puede parsear.

    Acepta:
      - pd.Timestamp / datetime / date (naive => se asume UTC)
      - strings ISO ("2025-01-31", "2025-01-31T10:00:00+07:00")
      - números: milisegundos desde epoch
      - dicts estilo documento {"seconds": ..., "nanoseconds": ...}
    """
    if value is None or value == "":
        return None
    if isinstance(value, Mapping):
        if "seconds" not in value:
            return None
        try:
            secs = float(value["seconds"]) + float(value.get("nanoseconds", 0) or 0) / 1e9
        except (TypeError, ValueError):
            return None
        return pd.Timestamp(secs, unit="s", tz="UTC")
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if pd.isna(value):
            return None
        return pd.to_datetime(value, unit="ms", utc=True)
    if isinstance(value, date) and not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    ts = pd.to_datetime(value, utc=True, errors="coerce")
    if ts is None or pd.isna(ts):
        return None
    return ts


@dataclass
class Trade:
    """
    Representa un trade individual del journal.

    Campos
    ------
    id : str
        Identificador opaco asignado por el store.
    ticker : str
        Símbolo del activo, en mayúsculas (ej. "BBCA", "BTCUSDT", "EURUSD").
    asset_type : {"Stock", "Crypto", "Forex"}
    position : {"Long", "Short"}
    entry_price, exit_price : float
        Precios en la misma divisa (la divisa base del journal).
    position_size : float
        Unidades de la posición.
    commission : float
        Comisión total del trade, en la divisa de los precios.
    open_date, close_date : pd.Timestamp | None
        Sin `close_date` el trade está abierto y no aporta P&L realizado.
    strategy, journal_notes : str | None
        Campos libres de diario.
    execution_rating : int | None
        Valoración 1-5 de la ejecución.
    user_id : str
        Dueño de la colección.
    created_at : pd.Timestamp | None
        Momento del alta en el store (ordena el historial).
    """

    ticker: str
    position: Position = "Long"
    entry_price: Optional[float] = None
    exit_price: Optional[float] = None
    position_size: Optional[float] = None
    commission: Optional[float] = 0.0
    asset_type: Optional[AssetType] = None
    open_date: Optional[pd.Timestamp] = None
    close_date: Optional[pd.Timestamp] = None
    strategy: Optional[str] = None
    journal_notes: Optional[str] = None
    execution_rating: Optional[int] = None
    user_id: Optional[str] = None
    created_at: Optional[pd.Timestamp] = None
    id: Optional[str] = None

    @property
    def is_closed(self) -> bool:
        return self.close_date is not None

    # ----------------------------------------------------------------------------------
    # Serialización (documento JSON del store)
    # ----------------------------------------------------------------------------------
    def to_record(self) -> dict[str, Any]:
        """Documento JSON-serializable con claves camelCase y fechas ISO."""
        out: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name in _DATE_FIELDS and value is not None:
                value = value.isoformat()
            out[RECORD_KEYS.get(f.name, f.name)] = value
        return out

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Trade:
        """
        Inversa de `to_record`. Acepta claves camelCase o snake_case; las claves
        desconocidas se ignoran. Los valores se copian tal cual (sin validar),
        salvo las fechas, que se normalizan con `to_timestamp`.
        """
        kwargs: dict[str, Any] = {}
        for f in fields(cls):
            camel = RECORD_KEYS.get(f.name, f.name)
            if camel in record:
                value = record[camel]
            elif f.name in record:
                value = record[f.name]
            else:
                continue
            if f.name in _DATE_FIELDS:
                value = to_timestamp(value)
            kwargs[f.name] = value
        kwargs.setdefault("ticker", "")
        return cls(**kwargs)
