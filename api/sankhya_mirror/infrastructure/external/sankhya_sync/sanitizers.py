"""
Saneamiento de valores Sankhya antes de persistirlos.

Funciones puras:
- parse_sankhya_date: fechas locales DD/MM/YYYY [HH:MM:SS]
- clamp_decimal: valores para columnas NUMERIC(p, 2) sin overflow
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from loguru import logger

DEFAULT_MAX_DIGITS = 15
DECIMAL_SCALE = 2


def parse_sankhya_date(value: Any) -> Optional[datetime]:
    """
    Convierte una fecha Sankhya a datetime (naive, hora local del ERP).

    Formatos aceptados: "DD/MM/YYYY" y "DD/MM/YYYY HH:MM:SS".
    Partes de hora faltantes valen 0 (medianoche).

    Nunca levanta excepción: ante entrada vacía o mal formada retorna None
    (fecha desconocida).
    """
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        return None

    parts = value.strip().split()
    date_part = parts[0]
    time_part = parts[1] if len(parts) > 1 else "00:00:00"

    date_pieces = date_part.split("/")
    if len(date_pieces) != 3 or not all(p.strip() for p in date_pieces):
        return None

    time_pieces = time_part.split(":")
    time_values = [p if p.strip() else "0" for p in time_pieces[:3]]
    while len(time_values) < 3:
        time_values.append("0")

    try:
        day, month, year = (int(p) for p in date_pieces)
        hour, minute, second = (int(p) for p in time_values)
        return datetime(year, month, day, hour, minute, second)
    except (ValueError, OverflowError):
        return None


def decimal_limit(max_digits: int = DEFAULT_MAX_DIGITS) -> Decimal:
    """Máximo absoluto representable en NUMERIC(max_digits, 2)."""
    return Decimal(10) ** (max_digits - DECIMAL_SCALE) - Decimal("0.01")


def clamp_decimal(value: Any, max_digits: int = DEFAULT_MAX_DIGITS) -> Optional[Decimal]:
    """
    Valida un valor para una columna NUMERIC(max_digits, 2).

    - Entrada no numérica, vacía, NaN o infinita -> None
    - |valor| > 10^(max_digits-2) - 0.01 -> se limita a ±límite (conserva el signo)
      y se emite un warning
    - En rango -> se retorna sin cambios
    """
    if value is None or isinstance(value, bool):
        return None

    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None

    if not number.is_finite():
        return None

    limit = decimal_limit(max_digits)
    if abs(number) > limit:
        logger.warning(
            f"[Sync] Valor {number} excede la precisión máxima ({max_digits},2); se limita a {limit}"
        )
        return limit if number > 0 else -limit

    return number
