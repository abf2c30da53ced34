# src/tradejournal/settings.py
"""
Módulo de configuración del proyecto.

Objetivos clave:
- Centralizar parámetros del journal (directorio de datos, usuario por defecto, divisas).
- Permitir sobreescritura vía variables de entorno (Docker, CI, CLI, .env).
- Gestionar rutas (raíz del proyecto, data/, reports/) de forma consistente.
- Proveer utilidades para crear subcarpetas de reportes reproducibles (<USER>_<YYYY-MM-DD>_runXX).
- Añadir validaciones ligeras (rangos) para evitar fallos silenciosos.

Decisiones:
- Se fuerzan ciertos parámetros a rangos razonables (p.ej., RATE_CACHE_SECONDS >= 0).
- Se usa UTC en el nombre de las carpetas de reportes para consistencia entre zonas horarias.
- Las carpetas data/ y reports/ se crean bajo demanda, nunca al importar.
"""

import os
import re
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path


# ---------------------------
# Helpers de entorno
# ---------------------------
def _f(name: str, default: float) -> float:
    """
    Lee una variable de entorno y la castea a float.
    Si no existe o falla el casteo, devuelve el valor por defecto.
    """
    try:
        return float(os.getenv(name, default))
    except (TypeError, ValueError):
        return float(default)


def _i(name: str, default: int) -> int:
    """
    Lee una variable de entorno y la castea a int.
    Si no existe o falla el casteo, devuelve el valor por defecto.
    """
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return int(default)


def _b(name: str, default: bool) -> bool:
    """
    Lee una variable de entorno booleana, admitiendo varios formatos comunes:
    "1", "true", "yes", "y", "on" (case-insensitive) => True
    Cualquier otro valor => False
    """
    val = str(os.getenv(name, str(default))).lower()
    return val in {"1", "true", "yes", "y", "on"}


# ---------------------------
# Rutas de proyecto (fuera de src/)
# ---------------------------

# settings.py => .../tradejournal/src/tradejournal/settings.py
# parents[2]  => .../tradejournal/
try:
    PROJECT_ROOT = Path(__file__).resolve().parents[2]
except IndexError:
    PROJECT_ROOT = Path(".").resolve()

# Directorio donde el store local guarda las colecciones de trades por usuario.
DATA_DIR = Path(os.getenv("JOURNAL_DATA_DIR", str(PROJECT_ROOT / "data")))
REPORTS_DIR = Path(os.getenv("JOURNAL_REPORTS_DIR", str(PROJECT_ROOT / "reports")))

# Usuario por defecto de la CLI (el journal siempre trabaja sobre UN usuario).
DEFAULT_USER = os.getenv("JOURNAL_USER", "local").strip() or "local"


# ---------------------------
# Divisas
# ---------------------------

# Los precios de los trades se registran en la divisa base; la de display solo afecta
# al formateo (dashboard).
BASE_CURRENCY = os.getenv("BASE_CURRENCY", "USD").upper()
DISPLAY_CURRENCY = os.getenv("DISPLAY_CURRENCY", "IDR").upper()

CURRENCY_API_URL = os.getenv("CURRENCY_API_URL", "https://api.freecurrencyapi.com/v1/latest")
CURRENCY_API_KEY = os.getenv("CURRENCY_API_KEY", "")

# Tipo de cambio usado mientras no haya uno descargado (o si la API falla).
FALLBACK_IDR_RATE = max(0.0, _f("FALLBACK_IDR_RATE", 16000.0)) or 16000.0

# Tiempo de vida de la caché en memoria del tipo de cambio (1h por defecto).
RATE_CACHE_SECONDS = max(0, _i("RATE_CACHE_SECONDS", 3600))

# Timeout de la petición HTTP al proveedor de tipos de cambio.
RATE_TIMEOUT = max(1.0, _f("RATE_TIMEOUT", 10.0))

# Si False, la CLI no intenta descargar el tipo de cambio y usa el fallback.
RATE_FETCH_ENABLED = _b("RATE_FETCH_ENABLED", True)


# ---------------------------
# Subcarpetas de reports: <USER>_<YYYY-MM-DD>_runXX
# ---------------------------

def _next_run_number(existing_dirs: Iterable[Path], prefix: str) -> int:
    """
    Dado un conjunto de directorios existentes y un prefijo, encuentra
    el mayor sufijo numérico runNN y devuelve el siguiente (NN+1).

    - existing_dirs: lista de Paths tipo ".../reports/alice_2025-10-29_run03"
    - prefix      : "alice_2025-10-29_run"
    """
    pat = re.compile(rf"^{re.escape(prefix)}(\d+)$")
    nums = []
    for p in existing_dirs:
        m = pat.match(p.name)
        if m:
            nums.append(int(m.group(1)))
    return (max(nums) + 1) if nums else 1


def generate_report_dir(user_id: str, base_dir: Path | None = None) -> Path:
    """
    Crea una subcarpeta dentro de reports/ con el patrón:
      <USER>_<YYYY-MM-DD>_runXX

    - user_id  : identificador del usuario; se sanea para usarlo en el path.
    - base_dir : raíz alternativa (por defecto REPORTS_DIR).
    """
    root = Path(base_dir) if base_dir is not None else REPORTS_DIR
    date_str = datetime.now(tz=UTC).strftime("%Y-%m-%d")

    safe_user = re.sub(r"[^A-Za-z0-9_-]", "", user_id) or "user"

    prefix = f"{safe_user}_{date_str}_run"
    root.mkdir(parents=True, exist_ok=True)
    existing = [p for p in root.glob(f"{prefix}*") if p.is_dir()]

    run_number = _next_run_number(existing, prefix)
    report_dir = root / f"{prefix}{run_number:02d}"
    report_dir.mkdir(parents=True, exist_ok=True)
    return report_dir


# ---------------------------
# Presentación
# ---------------------------

# Zona horaria en la que se muestran las fechas (la analítica trabaja en UTC).
DISPLAY_TZ = os.getenv("DISPLAY_TZ", "Asia/Jakarta")
