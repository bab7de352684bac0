"""
Utilidades para manejo de fechas y horas.
"""
from datetime import datetime, timezone
from typing import Optional


class DateTimeUtils:
    """Clase de utilidades para operaciones con fechas y horas."""

    @staticmethod
    def now_utc() -> datetime:
        """
        Obtiene la fecha y hora actual en UTC.

        Returns:
            datetime: Fecha y hora actual en UTC
        """
        return datetime.now(timezone.utc)

    @staticmethod
    def to_iso_string(dt: Optional[datetime]) -> Optional[str]:
        """
        Convierte un datetime a string ISO 8601 (None se propaga).

        Args:
            dt: Objeto datetime

        Returns:
            Optional[str]: Fecha en formato ISO 8601
        """
        return dt.isoformat() if dt is not None else None

    @staticmethod
    def elapsed_ms(start: datetime, end: datetime) -> int:
        """
        Milisegundos transcurridos entre dos instantes.

        Args:
            start: Inicio
            end: Fin

        Returns:
            int: Duracion en milisegundos (nunca negativa)
        """
        return max(0, int((end - start).total_seconds() * 1000))
