import logging
from datetime import datetime

from sqlalchemy.orm import Session

from app.core.config import SELECTION_LOCK_MARGIN_MINUTES
from app.core.errors import NotFound
from app.db.models.league import League
from app.db.models.race_selection import RaceSelection, SelectionStatus
from app.services import reuse_cycles
from app.services.calendar import CalendarGateway
from app.services.lock_clock import is_locked, utcnow
from app.services.selections import heal_race_reference

logger = logging.getLogger(__name__)

AUTO_NOTE = "Asignada automáticamente por no elegir antes del cierre"


def pick_auto_selection(ledger, season: int) -> dict | None:
    """
    Dos primeros pilotos disponibles y el primer equipo disponible del ciclo
    actual. Se aplican sobre una copia para que una rueda de ciclo entre el
    principal y el reserva se respete.
    """
    drivers = reuse_cycles.load_stack(ledger, reuse_cycles.DRIVER).copy()
    driver_roster = reuse_cycles.roster_for(reuse_cycles.DRIVER, season)

    chosen = []
    for _ in range(2):
        options = [
            d for d in reuse_cycles.available(reuse_cycles.DRIVER, drivers.current, season)
            if d not in chosen
        ]
        if not options:
            return None
        chosen.append(options[0])
        drivers.add(options[0], driver_roster)

    teams_used = reuse_cycles.get_used(ledger, reuse_cycles.TEAM)
    teams = reuse_cycles.available(reuse_cycles.TEAM, teams_used, season)
    if not teams:
        return None

    return {"main_driver": chosen[0], "reserve_driver": chosen[1], "team": teams[0]}


def auto_assign_for_round(db: Session, season: int, round: int, now: datetime | None = None) -> dict:
    now = now or utcnow()

    race = CalendarGateway(db).get(season, round)
    if race is None:
        raise NotFound(f"No existe la ronda {round} de {season}", {"season": season, "round": round})

    if not is_locked(now, race, SELECTION_LOCK_MARGIN_MINUTES):
        return {"success": False, "message": "El plazo todavía no ha cerrado", "assigned": 0, "skipped": 0, "results": []}

    assigned, skipped, results = 0, 0, []

    for league in db.query(League).filter(League.season == season).all():
        for user_id in sorted(league.member_ids() | {league.owner_id}):
            selection = (
                db.query(RaceSelection)
                .filter(
                    RaceSelection.user_id == user_id,
                    RaceSelection.league_id == league.id,
                    RaceSelection.round == round,
                )
                .first()
            )
            if selection is not None and selection.is_complete():
                skipped += 1
                continue

            try:
                ledger = reuse_cycles.sync_ledger(db, user_id, league)
                picks = pick_auto_selection(ledger, season)
                if picks is None:
                    skipped += 1
                    continue

                previous = selection.picks() if selection else None
                if selection is None:
                    selection = RaceSelection(user_id=user_id, league_id=league.id, race_id=race.id, round=round)
                    db.add(selection)
                else:
                    heal_race_reference(selection, race)

                selection.main_driver = picks["main_driver"]
                selection.reserve_driver = picks["reserve_driver"]
                selection.team = picks["team"]
                selection.status = SelectionStatus.AUTO_ASSIGNED
                selection.is_auto_assigned = True
                selection.is_admin_assigned = False
                selection.assigned_at = now
                selection.notes = AUTO_NOTE

                reuse_cycles.swap_used(ledger, season, previous, picks)
                db.commit()
            except Exception:
                db.rollback()
                logger.exception("Auto-asignación fallida: user=%s liga=%s ronda=%s", user_id, league.id, round)
                skipped += 1
                continue

            assigned += 1
            results.append({"user_id": user_id, "league_id": league.id, **picks})

    logger.info("Auto-asignación ronda %s/%s: %s asignadas, %s omitidas", season, round, assigned, skipped)
    return {
        "success": True,
        "message": f"Auto-asignadas {assigned} selecciones",
        "assigned": assigned,
        "skipped": skipped,
        "results": results,
    }
