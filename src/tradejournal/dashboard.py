# src/tradejournal/dashboard.py
"""
Recalculo reactivo de la analítica sobre los snapshots del store.

Responsabilidad
---------------
`AnalyticsFeed` se suscribe a la colección de un usuario en `TradeStore` y, por
cada snapshot recibido (alta, edición o borrado de un trade):
1) Guarda el snapshot en `trades`.
2) Recalcula desde cero `calculate_analytics(snapshot)` (sin deltas).
3) Republica el `TradeAnalyticsSummary` a sus propios listeners (`on_update`).

Estado expuesto
---------------
- `loading` : True hasta recibir el primer snapshot. Distingue "cargando" de
              "sin trades" (resumen vacío); el motor no hace esa distinción.
- `trades`  : último snapshot recibido (o None).
- `summary` : último resumen calculado (o None).
- `error`   : última excepción durante el recalculo (o None).

Notas de diseño
---------------
- Es la frontera reactiva; el motor de analítica sigue siendo una función pura.
- Si el recalculo falla se registra el error, se loguea y se relanza.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from .analytics import TradeAnalyticsSummary, calculate_analytics
from .store import TradeStore
from .trades import Trade

logger = logging.getLogger(__name__)

SummaryListener = Callable[[TradeAnalyticsSummary], None]


class AnalyticsFeed:
    """Mantiene el resumen de analítica de un usuario sincronizado con el store."""

    def __init__(self, store: TradeStore, user_id: str) -> None:
        self.store = store
        self.user_id = user_id
        self.trades: list[Trade] | None = None
        self.summary: TradeAnalyticsSummary | None = None
        self.error: Exception | None = None
        self.updates = 0
        self._listeners: list[SummaryListener] = []
        self._unsubscribe: Callable[[], None] | None = store.subscribe(user_id, self._on_snapshot)

    @property
    def loading(self) -> bool:
        return self.trades is None

    def on_update(self, callback: SummaryListener) -> None:
        """Registra un listener; si ya hay resumen, se le entrega inmediatamente."""
        self._listeners.append(callback)
        if self.summary is not None:
            callback(self.summary)

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_snapshot(self, snapshot: list[Trade]) -> None:
        self.trades = snapshot
        try:
            summary = calculate_analytics(snapshot)
        except Exception as e:
            self.error = e
            logger.exception("Fallo recalculando analítica user=%s", self.user_id)
            raise
        self.error = None
        self.summary = summary
        self.updates += 1
        logger.debug(
            "[user:%s] snapshot #%d trades=%d net=%.2f",
            self.user_id,
            self.updates,
            len(snapshot),
            summary.total_net_pnl,
        )
        for cb in list(self._listeners):
            cb(summary)
