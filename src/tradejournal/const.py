# src/tradejournal/const.py
"""
Constantes globales del paquete.

Este módulo debe contener únicamente valores **estables** que tengan impacto
en la compatibilidad entre partes del sistema (formato de los documentos
guardados, contrato de los CSVs exportados, conjuntos cerrados del modelo).

Convención
----------
- Usa nombres en MAYÚSCULAS.
- Cambiar una constante “de contrato” es una decisión explícita (PR dedicado).
"""

# =============================================================================
# Versión del esquema de salida (CSV de trades exportado)
# =============================================================================
# Los tests (tests/test_report_schema.py) esperan que esta constante valga 1 y que
# el CSV contenga ciertas columnas. Si añades, renombras o eliminas columnas,
# incrementa este número y ajusta los tests.
SCHEMA_VERSION = 1

# =============================================================================
# Conjuntos cerrados del modelo de Trade
# =============================================================================
ASSET_TYPES = ("Stock", "Crypto", "Forex")
POSITIONS = ("Long", "Short")

# Rango de la valoración de ejecución (inclusive).
RATING_MIN = 1
RATING_MAX = 5

# Columnas del CSV de historial (orden de exportación).
TRADE_COLUMNS = [
    "id",
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
    "user_id",
    "created_at",
    "pnl",
    "schema_version",
]
