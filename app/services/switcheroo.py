"""
Switcheroo: cambiar un piloto ya elegido después de la clasificación.

Máximo MAX_SWITCHEROOS_PER_SEASON por usuario, liga y temporada. Gastar uno
es "actualizar la selección + añadir al historial" en una sola transacción;
``sequence`` con restricción única hace de compare-and-swap.
"""
import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core import f1_data
from app.core.config import MAX_SWITCHEROOS_PER_SEASON
from app.core.errors import (
    DuplicateDriver,
    InvalidSelection,
    NoSwitcheroosRemaining,
    NotFound,
    SwitcherooWindowClosed,
)
from app.db.models.league import League
from app.db.models.race_selection import RaceSelection
from app.db.models.switcheroo import Switcheroo
from app.db.models.user import User
from app.services import reuse_cycles
from app.services.calendar import resolve_race_for
from app.services.leagues import require_member
from app.services.lock_clock import is_switcheroo_window_open, switcheroo_window, utcnow

logger = logging.getLogger(__name__)


def _used_count(db: Session, user_id: int, league: League) -> int:
    return (
        db.query(Switcheroo)
        .filter(
            Switcheroo.user_id == user_id,
            Switcheroo.league_id == league.id,
            Switcheroo.season == league.season,
        )
        .count()
    )


def remaining_switcheroos(db: Session, user: User, league: League) -> dict:
    require_member(league, user)
    used = _used_count(db, user.id, league)
    return {
        "remaining": max(MAX_SWITCHEROOS_PER_SEASON - used, 0),
        "used": used,
        "total": MAX_SWITCHEROOS_PER_SEASON,
    }


def switcheroo_history(db: Session, user: User, league: League) -> list[Switcheroo]:
    require_member(league, user)
    return (
        db.query(Switcheroo)
        .filter(
            Switcheroo.user_id == user.id,
            Switcheroo.league_id == league.id,
            Switcheroo.season == league.season,
        )
        .order_by(Switcheroo.time_used.desc())
        .all()
    )


def window_status(db: Session, league: League, round: int, now: datetime | None = None) -> dict:
    now = now or utcnow()
    race = resolve_race_for(db, league, round)
    opens, closes = switcheroo_window(race)
    return {
        "round": race.round,
        "is_switcheroo_allowed": is_switcheroo_window_open(now, race),
        "opens_at": opens,
        "closes_at": closes,
    }


def perform_switcheroo(
    db: Session,
    user: User,
    league: League,
    round: int,
    original_driver: str,
    new_driver: str,
    now: datetime | None = None,
) -> dict:
    now = now or utcnow()
    require_member(league, user)

    # 1. Ventana
    race = resolve_race_for(db, league, round)
    if not is_switcheroo_window_open(now, race):
        raise SwitcherooWindowClosed("El switcheroo no está disponible ahora mismo", {"round": round})

    # 2. Cupo
    used = _used_count(db, user.id, league)
    if used >= MAX_SWITCHEROOS_PER_SEASON:
        raise NoSwitcheroosRemaining("No te quedan switcheroos esta temporada", {"used": used})

    # 3. Selección y pilotos
    selection = (
        db.query(RaceSelection)
        .filter(
            RaceSelection.user_id == user.id,
            RaceSelection.league_id == league.id,
            RaceSelection.round == round,
        )
        .first()
    )
    if selection is None:
        raise NotFound("No tienes selección para esta carrera", {"round": round})

    original = f1_data.canonical_driver(league.season, original_driver)
    replacement = f1_data.canonical_driver(league.season, new_driver)
    if original not in (selection.main_driver, selection.reserve_driver):
        raise InvalidSelection(f"{original} no está en tu selección", {"driver": original})
    if replacement in (selection.main_driver, selection.reserve_driver):
        raise DuplicateDriver(f"{replacement} ya está en tu selección", {"driver": replacement})

    previous = selection.picks()
    if selection.main_driver == original:
        selection.main_driver = replacement
    else:
        selection.reserve_driver = replacement

    ledger = reuse_cycles.get_or_create_ledger(db, user.id, league.id)
    reuse_cycles.swap_used(ledger, league.season, previous, selection.picks())

    # 4. Historial (mismo commit que la selección)
    record = Switcheroo(
        user_id=user.id,
        league_id=league.id,
        season=league.season,
        round=round,
        sequence=used + 1,
        original_driver=original,
        new_driver=replacement,
        time_used=now,
    )
    db.add(record)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise NoSwitcheroosRemaining(
            "Otro switcheroo se registró a la vez; vuelve a intentarlo",
            {"sequence": used + 1},
        )

    logger.info(
        "Switcheroo %s/%s: user=%s liga=%s ronda=%s %s -> %s",
        used + 1, MAX_SWITCHEROOS_PER_SEASON, user.id, league.id, round, original, replacement,
    )
    return {
        "selection": selection,
        "switcheroo": record,
        "remaining": MAX_SWITCHEROOS_PER_SEASON - (used + 1),
    }
