# src/tradejournal/currency.py
"""
Tipo de cambio USD -> IDR para el dashboard (colaborador externo).

Características:
- Descarga el tipo desde un proveedor HTTP (por defecto freecurrencyapi.com) con `requests`.
- Caché en memoria con TTL (`settings.RATE_CACHE_SECONDS`, 1h por defecto) para no
  repetir la petición en cada refresco del dashboard.
- Si la petición falla (red, HTTP != 2xx, payload inválido) se loguea, se guarda
  el error y se sigue usando el último tipo válido o `settings.FALLBACK_IDR_RATE`.

Notas:
- El tipo SOLO se aplica al formateo (`presentation.convert_summary`); la analítica
  siempre trabaja en la divisa de los precios.
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import requests

from . import settings
from .errors import RateFetchError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateQuote:
    """Tipo vigente + error de la última descarga (si la hubo) + si viene de caché."""

    rate: float
    error: Exception | None = None
    from_cache: bool = False


class RateProvider:
    """
    Wrapper mínimo sobre la API de tipos de cambio.

    Atributos:
      - base / target : divisas (por defecto settings.BASE_CURRENCY / DISPLAY_CURRENCY)
      - rate          : último tipo válido (o el fallback)
      - error         : última excepción de descarga (None si la última fue bien)
    """

    def __init__(
        self,
        api_key: str | None = None,
        base: str | None = None,
        target: str | None = None,
        url: str | None = None,
        ttl_seconds: int | None = None,
        fallback_rate: float | None = None,
        session: requests.Session | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.api_key = settings.CURRENCY_API_KEY if api_key is None else api_key
        self.base = (base or settings.BASE_CURRENCY).upper()
        self.target = (target or settings.DISPLAY_CURRENCY).upper()
        self.url = url or settings.CURRENCY_API_URL
        self.ttl_seconds = settings.RATE_CACHE_SECONDS if ttl_seconds is None else ttl_seconds
        self.rate = float(settings.FALLBACK_IDR_RATE if fallback_rate is None else fallback_rate)
        self.error: Exception | None = None
        self._session = session or requests.Session()
        self._clock = clock
        self._fetched_at: float | None = None

    def _cache_valid(self) -> bool:
        if self._fetched_at is None:
            return False
        return (self._clock() - self._fetched_at) < self.ttl_seconds

    def _fetch(self) -> float:
        params: dict[str, Any] = {
            "apikey": self.api_key,
            "currencies": self.target,
            "base_currency": self.base,
        }
        resp = self._session.get(self.url, params=params, timeout=settings.RATE_TIMEOUT)
        resp.raise_for_status()
        try:
            payload = resp.json()
            rate = payload["data"][self.target]
        except (ValueError, KeyError, TypeError) as e:
            raise RateFetchError(f"Respuesta sin tipo {self.base}->{self.target}") from e
        if isinstance(rate, bool) or not isinstance(rate, (int, float)):
            raise RateFetchError(f"Tipo de cambio inválido: {rate!r}")
        if not math.isfinite(rate) or rate <= 0:
            raise RateFetchError(f"Tipo de cambio fuera de rango: {rate!r}")
        return float(rate)

    def get_rate(self, force: bool = False) -> RateQuote:
        """
        Devuelve el tipo vigente. Usa la caché si tiene menos de `ttl_seconds`
        (salvo `force=True`). Nunca lanza por fallos del proveedor.
        """
        if not force and self._cache_valid():
            return RateQuote(rate=self.rate, error=None, from_cache=True)

        try:
            rate = self._fetch()
        except (requests.RequestException, RateFetchError) as e:
            self.error = e
            logger.warning(
                "No se pudo obtener el tipo %s->%s (%s); se usa %.4f",
                self.base,
                self.target,
                e,
                self.rate,
            )
            return RateQuote(rate=self.rate, error=e, from_cache=False)

        self.rate = rate
        self.error = None
        self._fetched_at = self._clock()
        logger.info("Tipo de cambio %s->%s actualizado: %.4f", self.base, self.target, rate)
        return RateQuote(rate=rate, error=None, from_cache=False)
