"""
Reloj de cierre.

Funciones puras: reciben la hora y la fila del calendario (o cualquier objeto
con los mismos atributos) y no tocan la base de datos. Todas las fechas son
UTC "naive", igual que se guardan en ``race_calendar``.
"""
from datetime import datetime, timedelta, timezone

from app.core.config import SELECTION_LOCK_MARGIN_MINUTES

# Duración asumida de una clasificación (el calendario solo guarda la hora de inicio)
QUALIFYING_DURATION = timedelta(hours=1)
SWITCHEROO_CLOSE_MARGIN = timedelta(minutes=5)


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _naive(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def effective_qualifying_time(race) -> datetime:
    """Sprint qualifying si es fin de semana sprint y está programada; si no, la qualy normal."""
    if race.is_sprint_weekend and race.sprint_qualifying_start:
        return _naive(race.sprint_qualifying_start)
    return _naive(race.qualifying_start)


def lock_time(race, margin_minutes: int = SELECTION_LOCK_MARGIN_MINUTES) -> datetime:
    return effective_qualifying_time(race) - timedelta(minutes=margin_minutes)


def is_locked(now: datetime, race, margin_minutes: int = SELECTION_LOCK_MARGIN_MINUTES) -> bool:
    # Monótona: una vez cerrada, cualquier "now" posterior sigue cerrado
    return _naive(now) >= lock_time(race, margin_minutes)


def switcheroo_window(race) -> tuple[datetime, datetime]:
    """
    (apertura, cierre) del switcheroo: desde el final de la (sprint) qualy
    hasta 5 minutos antes de la (sprint) carrera.
    """
    opens = effective_qualifying_time(race) + QUALIFYING_DURATION
    if race.is_sprint_weekend and race.sprint_start:
        closes = _naive(race.sprint_start) - SWITCHEROO_CLOSE_MARGIN
    else:
        closes = _naive(race.race_start) - SWITCHEROO_CLOSE_MARGIN
    return opens, closes


def is_switcheroo_window_open(now: datetime, race) -> bool:
    opens, closes = switcheroo_window(race)
    return opens <= _naive(now) <= closes
