# src/tradejournal/store.py
"""
Store local de trades por usuario (colaborador de persistencia).

Objetivos del módulo
--------------------
1) Guardar la colección de trades de cada usuario:
   - en disco: `<data_dir>/users/<user_id>/trades.json` (lista de documentos camelCase)
   - o solo en memoria si `data_dir` es None (tests, sesiones efímeras).
2) Operaciones de escritura: `add_trade`, `update_trade`, `delete_trade`.
   El store asigna `id` (uuid4) y `created_at`, y guarda el ticker en MAYÚSCULAS.
3) Consultas: `list_trades` (historial) y `latest_trade_for_ticker`
   (último trade de un ticker por `created_at`, para pre-rellenar el formulario).
4) Suscripciones: `subscribe(user_id, callback)` entrega el snapshot completo al
   suscribirse y tras cada escritura de ese usuario. Es la frontera reactiva que
   usa `dashboard.AnalyticsFeed` para recalcular la analítica.

Decisiones
----------
- Un solo proceso, sin transacciones ni bloqueo entre procesos: las garantías
  de persistencia no son responsabilidad del journal.
- Cada usuario es una colección independiente: nunca se mezclan trades.
- JSON corrupto en disco => `StoreError` con la ruta (no se sobreescribe nada).
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable, Mapping
from dataclasses import replace
from pathlib import Path
from typing import Any
from uuid import uuid4

import pandas as pd

from .errors import StoreError, TradeNotFoundError
from .trades import Trade, to_timestamp

logger = logging.getLogger(__name__)

Snapshot = list[Trade]
Listener = Callable[[Snapshot], None]

_ORDER_FIELDS = {"created_at", "close_date", "open_date"}
_EPOCH = pd.Timestamp(0, tz="UTC")


class TradeStore:
    """
    Colecciones de trades por usuario con notificación de snapshots.

    Atributos
    ---------
    data_dir : Path | None
        Raíz de persistencia. None => solo memoria.
    """

    def __init__(self, data_dir: str | Path | None = None) -> None:
        self.data_dir = Path(data_dir) if data_dir is not None else None
        self._cache: dict[str, list[Trade]] = {}
        self._listeners: dict[str, list[Listener]] = {}

    # ----------------------------------------------------------------------------------
    # Persistencia
    # ----------------------------------------------------------------------------------
    def _path(self, user_id: str) -> Path:
        if self.data_dir is None:
            raise StoreError("Store en memoria: no hay ruta de persistencia")
        safe = re.sub(r"[^A-Za-z0-9_.-]", "_", user_id)
        return self.data_dir / "users" / safe / "trades.json"

    def _load(self, user_id: str) -> list[Trade]:
        if user_id in self._cache:
            return self._cache[user_id]

        trades: list[Trade] = []
        if self.data_dir is not None:
            path = self._path(user_id)
            if path.exists():
                try:
                    with path.open("r", encoding="utf-8") as fh:
                        raw = json.load(fh)
                except json.JSONDecodeError as e:
                    raise StoreError(f"JSON corrupto en {path}: {e}") from e
                if not isinstance(raw, list):
                    raise StoreError(f"{path} debe contener una lista de trades")
                trades = [Trade.from_record(r) for r in raw]
                logger.debug("Cargados %d trades de %s", len(trades), path)

        self._cache[user_id] = trades
        return trades

    def _save(self, user_id: str) -> None:
        if self.data_dir is None:
            return
        path = self._path(user_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".json.tmp")
        records = [t.to_record() for t in self._cache.get(user_id, [])]
        with tmp.open("w", encoding="utf-8") as fh:
            json.dump(records, fh, indent=2, ensure_ascii=False)
        tmp.replace(path)

    # ----------------------------------------------------------------------------------
    # Escrituras
    # ----------------------------------------------------------------------------------
    def add_trade(self, user_id: str, data: Mapping[str, Any] | Trade) -> Trade:
        """
        Añade un trade a la colección del usuario y notifica a los suscriptores.

        `data` suele venir ya validado (`validation.validate_trade_input`); el store
        solo asigna id/created_at/user_id y normaliza el ticker.
        """
        base = data if isinstance(data, Trade) else Trade.from_record(data)
        trade = replace(
            base,
            id=uuid4().hex,
            ticker=str(base.ticker or "").strip().upper(),
            user_id=user_id,
            created_at=pd.Timestamp.now(tz="UTC"),
        )
        self._load(user_id).append(trade)
        self._save(user_id)
        logger.info("Trade %s añadido (%s %s) user=%s", trade.id, trade.position, trade.ticker, user_id)
        self._notify(user_id)
        return trade

    def update_trade(self, user_id: str, trade_id: str, **changes: Any) -> Trade:
        """Modifica campos de un trade existente. `id`, `user_id` y `created_at` no se tocan."""
        trades = self._load(user_id)
        for i, t in enumerate(trades):
            if t.id == trade_id:
                break
        else:
            raise TradeNotFoundError(user_id, trade_id)

        for key in ("id", "user_id", "created_at"):
            changes.pop(key, None)
        for key in ("open_date", "close_date"):
            if key in changes:
                changes[key] = to_timestamp(changes[key])
        if "ticker" in changes and changes["ticker"] is not None:
            changes["ticker"] = str(changes["ticker"]).strip().upper()

        updated = replace(trades[i], **changes)
        trades[i] = updated
        self._save(user_id)
        logger.info("Trade %s actualizado user=%s campos=%s", trade_id, user_id, sorted(changes))
        self._notify(user_id)
        return updated

    def delete_trade(self, user_id: str, trade_id: str) -> None:
        trades = self._load(user_id)
        remaining = [t for t in trades if t.id != trade_id]
        if len(remaining) == len(trades):
            raise TradeNotFoundError(user_id, trade_id)
        self._cache[user_id] = remaining
        self._save(user_id)
        logger.info("Trade %s eliminado user=%s", trade_id, user_id)
        self._notify(user_id)

    # ----------------------------------------------------------------------------------
    # Consultas
    # ----------------------------------------------------------------------------------
    def get_trade(self, user_id: str, trade_id: str) -> Trade:
        for t in self._load(user_id):
            if t.id == trade_id:
                return t
        raise TradeNotFoundError(user_id, trade_id)

    def list_trades(
        self,
        user_id: str,
        order_by: str = "created_at",
        descending: bool = True,
    ) -> list[Trade]:
        """
        Snapshot de la colección del usuario ordenado por `order_by`
        ("created_at", "close_date" u "open_date"). Las fechas ausentes van al final.
        """
        if order_by not in _ORDER_FIELDS:
            raise ValueError(f"order_by debe ser uno de {sorted(_ORDER_FIELDS)}")
        # a igual fecha, el orden de alta desempata (el último añadido es el más reciente)
        indexed = list(enumerate(self._load(user_id)))
        present = [(i, t) for i, t in indexed if getattr(t, order_by) is not None]
        missing = [t for i, t in indexed if getattr(t, order_by) is None]
        present.sort(key=lambda it: (getattr(it[1], order_by), it[0]), reverse=descending)
        return [t for _, t in present] + missing

    def latest_trade_for_ticker(self, user_id: str, ticker: str) -> Trade | None:
        """Trade más reciente (por `created_at`) del ticker, o None si no hay ninguno."""
        wanted = (ticker or "").strip().upper()
        if not wanted:
            return None
        matches = [(i, t) for i, t in enumerate(self._load(user_id)) if t.ticker == wanted]
        if not matches:
            return None
        _, latest = max(
            matches, key=lambda it: (it[1].created_at if it[1].created_at is not None else _EPOCH, it[0])
        )
        return latest

    # ----------------------------------------------------------------------------------
    # Suscripciones (snapshots)
    # ----------------------------------------------------------------------------------
    def subscribe(self, user_id: str, callback: Listener) -> Callable[[], None]:
        """
        Registra `callback(snapshot)` para el usuario y lo invoca inmediatamente con
        el estado actual. Devuelve una función que cancela la suscripción.
        """
        self._listeners.setdefault(user_id, []).append(callback)

        def unsubscribe() -> None:
            listeners = self._listeners.get(user_id, [])
            if callback in listeners:
                listeners.remove(callback)

        try:
            callback(list(self._load(user_id)))
        except Exception:
            unsubscribe()
            raise
        return unsubscribe

    def _notify(self, user_id: str) -> None:
        listeners = list(self._listeners.get(user_id, []))
        if not listeners:
            return
        snapshot = list(self._load(user_id))
        for cb in listeners:
            try:
                cb(list(snapshot))
            except Exception:
                logger.exception("Error en suscriptor de trades user=%s", user_id)
                raise
