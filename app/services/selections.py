"""
Libro de selecciones: una selección viva por (usuario, liga, ronda).

Flujo de guardado:
    1. Próxima carrera de la temporada de la liga
    2. Nombres canónicos y piloto principal != reserva
    3. Cierre (qualy efectiva - margen)
    4. Disponibilidad en el ciclo actual
    5. Upsert + actualización del libro de reutilización
"""
import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core import f1_data
from app.core.config import SELECTION_LOCK_MARGIN_MINUTES
from app.core.errors import (
    AlreadyUsedInCycle,
    Conflict,
    DuplicateDriver,
    InvalidInput,
    NotFound,
    SelectionLocked,
)
from app.db.models.league import League
from app.db.models.race_calendar import RaceCalendar
from app.db.models.race_card_selection import RaceCardSelection
from app.db.models.race_result import RaceResult
from app.db.models.race_selection import RaceSelection, SelectionStatus
from app.db.models.user import User
from app.services import reuse_cycles
from app.services.calendar import CalendarGateway, resolve_race_for
from app.services.leagues import require_league_admin, require_member
from app.services.lock_clock import is_locked, lock_time, utcnow

logger = logging.getLogger(__name__)


def _find_selection(db: Session, user_id: int, league_id: int, round: int) -> RaceSelection | None:
    return (
        db.query(RaceSelection)
        .filter(
            RaceSelection.user_id == user_id,
            RaceSelection.league_id == league_id,
            RaceSelection.round == round,
        )
        .first()
    )


def _empty_selection(user_id: int, league: League, race: RaceCalendar) -> RaceSelection:
    # Objeto sin añadir a la sesión: solo se persiste al guardar
    return RaceSelection(
        user_id=user_id,
        league_id=league.id,
        race_id=race.id,
        round=race.round,
        status=SelectionStatus.EMPTY,
        points=0,
        is_admin_assigned=False,
        is_auto_assigned=False,
        notes="",
    )


def canonical_picks(season: int, main_driver: str, reserve_driver: str, team: str) -> dict:
    main = f1_data.canonical_driver(season, main_driver)
    reserve = f1_data.canonical_driver(season, reserve_driver)
    team_name = f1_data.canonical_team(season, team)

    if main == reserve:
        raise DuplicateDriver(
            "El piloto principal y el reserva no pueden ser el mismo",
            {"driver": main},
        )
    return {"main_driver": main, "reserve_driver": reserve, "team": team_name}


def heal_race_reference(selection: RaceSelection, race: RaceCalendar):
    if selection.race_id != race.id:
        logger.warning(
            "Selección %s apuntaba a race_id=%s, re-apuntada a %s (temporada %s, ronda %s)",
            selection.id, selection.race_id, race.id, race.season, race.round,
        )
        selection.race_id = race.id


def get_or_init_selection(
    db: Session,
    user: User,
    league: League,
    round: int | None = None,
    now: datetime | None = None,
) -> dict:
    now = now or utcnow()
    require_member(league, user)
    gateway = CalendarGateway(db)

    if round is None:
        race = gateway.next_race(league.season, now)
        if race is None:
            raise NotFound("No hay próximas carreras en el calendario", {"season": league.season})
    else:
        race = resolve_race_for(db, league, round)

    selection = _find_selection(db, user.id, league.id, race.round)
    if selection is None:
        selection = _empty_selection(user.id, league, race)
    elif selection.race_id != race.id:
        heal_race_reference(selection, race)
        db.commit()
        db.refresh(selection)

    return {
        "selection": selection,
        "race": race,
        "is_locked": is_locked(now, race, SELECTION_LOCK_MARGIN_MINUTES),
        "lock_time": lock_time(race, SELECTION_LOCK_MARGIN_MINUTES),
    }


def check_reuse(ledger, season: int, picks: dict, previous: dict | None):
    """
    Lanza ``AlreadyUsedInCycle`` si algún valor ya está en el ciclo actual.
    Los valores que el usuario ya tenía en ESTA ronda no cuentan (edición).
    """
    previous = previous or {}

    drivers = reuse_cycles.load_stack(ledger, reuse_cycles.DRIVER).copy()
    for name in (previous.get("main_driver"), previous.get("reserve_driver")):
        if name:
            drivers.remove(name)

    teams = reuse_cycles.load_stack(ledger, reuse_cycles.TEAM).copy()
    if previous.get("team"):
        teams.remove(previous["team"])

    used_drivers = drivers.blocked(
        [picks["main_driver"], picks["reserve_driver"]],
        reuse_cycles.roster_for(reuse_cycles.DRIVER, season),
    )
    used_teams = teams.blocked(
        [picks["team"]],
        reuse_cycles.roster_for(reuse_cycles.TEAM, season),
    )

    if used_drivers or used_teams:
        blocked = used_drivers + used_teams
        raise AlreadyUsedInCycle(
            f"Ya usado en este ciclo: {', '.join(blocked)}. Hay que usar toda la parrilla antes de repetir.",
            {"drivers": used_drivers, "teams": used_teams},
        )


def save_selection(
    db: Session,
    user: User,
    league: League,
    main_driver: str,
    reserve_driver: str,
    team: str,
    now: datetime | None = None,
) -> RaceSelection:
    now = now or utcnow()
    require_member(league, user)

    # 1. Próxima carrera
    race = CalendarGateway(db).next_race(league.season, now)
    if race is None:
        raise InvalidInput("No hay ninguna carrera futura para esta temporada", {"season": league.season})

    # 2. Nombres
    picks = canonical_picks(league.season, main_driver, reserve_driver, team)

    # 3. Cierre
    if is_locked(now, race, SELECTION_LOCK_MARGIN_MINUTES):
        raise SelectionLocked(
            "La selección está cerrada para esta carrera",
            {"round": race.round, "lock_time": lock_time(race).isoformat()},
        )

    # 4. Ciclo de reutilización
    selection = _find_selection(db, user.id, league.id, race.round)
    previous = selection.picks() if selection else None

    ledger = reuse_cycles.sync_ledger(db, user.id, league)
    check_reuse(ledger, league.season, picks, previous)

    # 5. Upsert
    if selection is None:
        selection = RaceSelection(user_id=user.id, league_id=league.id, round=race.round, race_id=race.id)
        db.add(selection)
    else:
        heal_race_reference(selection, race)

    selection.main_driver = picks["main_driver"]
    selection.reserve_driver = picks["reserve_driver"]
    selection.team = picks["team"]
    selection.status = SelectionStatus.USER_SUBMITTED
    selection.is_auto_assigned = False
    selection.is_admin_assigned = False

    reuse_cycles.swap_used(ledger, league.season, previous, picks)

    round = race.round
    try:
        db.commit()
    except IntegrityError:
        # Otro guardado de la misma ronda llegó antes: si es igual, ya está hecho
        db.rollback()
        stored = _find_selection(db, user.id, league.id, round)
        if stored is not None and stored.picks() == picks:
            return stored
        raise Conflict(
            "Tu selección de esta ronda cambió a la vez; vuelve a intentarlo",
            {"round": round},
        )

    db.refresh(selection)
    return selection


def zero_breakdown(selection: RaceSelection) -> dict:
    return {
        "main_driver": selection.main_driver,
        "reserve_driver": selection.reserve_driver,
        "team": selection.team,
        "main_driver_points": 0,
        "reserve_driver_points": 0,
        "team_points": 0,
    }


def admin_override(
    db: Session,
    actor: User,
    target_user_id: int,
    league: League,
    race_id: int,
    main_driver: str,
    reserve_driver: str,
    team: str,
    assign_points: bool = False,
    notes: str = "",
    scoring=None,
    leaderboard=None,
    now: datetime | None = None,
) -> RaceSelection:
    """
    Asignación por un admin de la liga. Se salta el control de ciclo pero
    mantiene el libro de reutilización al día. Puntos y clasificación son
    "best-effort": si fallan, la selección queda guardada igualmente.
    """
    now = now or utcnow()
    require_league_admin(league, actor)

    target = db.get(User, target_user_id)
    if target is None or not league.is_member(target_user_id):
        raise NotFound("El usuario no pertenece a la liga", {"user_id": target_user_id})

    gateway = CalendarGateway(db)
    race = gateway.get_by_id(race_id)
    if race is None:
        raise NotFound("Carrera no encontrada", {"race_id": race_id})
    if race.season != league.season:
        race = resolve_race_for(db, league, race.round, cached_race_id=race.id)

    picks = canonical_picks(league.season, main_driver, reserve_driver, team)

    # Primero por carrera; si no, por (liga, ronda) re-apuntando la referencia
    selection = (
        db.query(RaceSelection)
        .filter(
            RaceSelection.user_id == target_user_id,
            RaceSelection.league_id == league.id,
            RaceSelection.race_id == race.id,
        )
        .first()
    )
    if selection is None:
        selection = _find_selection(db, target_user_id, league.id, race.round)
        if selection is not None:
            heal_race_reference(selection, race)

    previous = selection.picks() if selection else None
    if selection is None:
        selection = RaceSelection(user_id=target_user_id, league_id=league.id, race_id=race.id, round=race.round)
        db.add(selection)

    selection.main_driver = picks["main_driver"]
    selection.reserve_driver = picks["reserve_driver"]
    selection.team = picks["team"]
    selection.status = SelectionStatus.ADMIN_ASSIGNED
    selection.is_admin_assigned = True
    selection.is_auto_assigned = False
    selection.assigned_by_id = actor.id
    selection.assigned_at = now
    selection.notes = notes or ""
    if not assign_points:
        selection.points = 0
        selection.point_breakdown = zero_breakdown(selection)

    ledger = reuse_cycles.get_or_create_ledger(db, target_user_id, league.id)
    reuse_cycles.swap_used(ledger, league.season, previous, picks)

    db.commit()
    db.refresh(selection)
    logger.info(
        "Selección asignada por admin %s: user=%s liga=%s ronda=%s",
        actor.id, target_user_id, league.id, race.round,
    )

    if assign_points and scoring is not None:
        _assign_points(db, selection, race, scoring)

    if leaderboard is not None:
        try:
            leaderboard.update_standings(db, league.id, race.id)
        except Exception:
            logger.exception("No se pudo actualizar la clasificación de la liga %s", league.id)

    return selection


def _assign_points(db: Session, selection: RaceSelection, race: RaceCalendar, scoring):
    result = (
        db.query(RaceResult)
        .filter(RaceResult.season == race.season, RaceResult.round == race.round)
        .first()
    )
    if result is None:
        logger.warning("Sin resultado para %s ronda %s; no se asignan puntos", race.season, race.round)
        return

    activation = (
        db.query(RaceCardSelection)
        .filter(
            RaceCardSelection.user_id == selection.user_id,
            RaceCardSelection.league_id == selection.league_id,
            RaceCardSelection.round == race.round,
        )
        .first()
    )

    try:
        scored = scoring.calculate_race_points(selection, result, activation)
        selection.points = scored["total_points"]
        selection.point_breakdown = scored["breakdown"]
        db.commit()
        db.refresh(selection)
    except Exception:
        db.rollback()
        logger.exception("Fallo al puntuar la selección %s; se mantiene la asignación", selection.id)


def list_race_selections(db: Session, user: User, league: League, round: int, now: datetime | None = None) -> dict:
    """
    Selecciones de todos los miembros para una ronda. Antes del cierre solo
    se ven las propias; de los demás únicamente si ya han elegido.
    """
    now = now or utcnow()
    require_member(league, user)
    race = resolve_race_for(db, league, round)
    locked = is_locked(now, race, SELECTION_LOCK_MARGIN_MINUTES)

    by_user = {
        s.user_id: s
        for s in db.query(RaceSelection)
        .filter(RaceSelection.league_id == league.id, RaceSelection.round == round)
        .all()
    }

    member_ids = league.member_ids() | {league.owner_id}
    users = db.query(User).filter(User.id.in_(member_ids)).order_by(User.username).all()

    rows = []
    for member in users:
        sel = by_user.get(member.id)
        visible = locked or member.id == user.id
        row = {
            "user_id": member.id,
            "username": member.username,
            "has_selection": bool(sel and sel.is_complete()),
            "status": sel.status.value if sel else SelectionStatus.EMPTY.value,
            "main_driver": None,
            "reserve_driver": None,
            "team": None,
            "points": sel.points if sel else 0,
        }
        if sel and visible:
            row.update(sel.picks())
        rows.append(row)

    return {"race": race, "is_locked": locked, "selections": rows}
