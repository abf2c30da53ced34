# src/tradejournal/errors.py
"""Excepciones propias del journal."""

from __future__ import annotations


class TradeValidationError(ValueError):
    """
    Uno o más campos de un trade no superan la validación de entrada.

    `errors` mapea nombre de campo -> mensaje legible, para que la CLI (o un
    formulario) pueda mostrar todos los problemas de una vez.
    """

    def __init__(self, errors: dict[str, str]):
        self.errors = dict(errors)
        detail = "; ".join(f"{k}: {v}" for k, v in self.errors.items())
        super().__init__(f"Trade no válido ({detail})")


class TradeNotFoundError(KeyError):
    """No existe un trade con ese id en la colección del usuario."""

    def __init__(self, user_id: str, trade_id: str):
        self.user_id = user_id
        self.trade_id = trade_id
        super().__init__(f"Trade {trade_id!r} no encontrado para el usuario {user_id!r}")

    def __str__(self) -> str:
        return str(self.args[0])


class StoreError(RuntimeError):
    """Fallo leyendo o escribiendo la colección persistida en disco."""


class RateFetchError(RuntimeError):
    """El proveedor de tipos de cambio no devolvió un tipo utilizable."""
