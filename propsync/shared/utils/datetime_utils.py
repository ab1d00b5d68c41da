"""
Utilidades para manejo de fechas y horas.
"""
from datetime import date, datetime, time, timedelta, timezone
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
    def next_midnight(now: Optional[datetime] = None) -> datetime:
        """
        Calcula la proxima medianoche en hora local.

        Se construye como fecha naive y luego se localiza, asi el offset
        corresponde al dia destino (cambios de horario incluidos).

        Args:
            now: Instante de referencia (naive = hora local). Default: ahora.

        Returns:
            datetime: Proxima medianoche local, aware
        """
        if now is None:
            today = date.today()
        elif now.tzinfo is not None:
            today = now.astimezone().date()
        else:
            today = now.date()
        return datetime.combine(today + timedelta(days=1), time.min).astimezone()
