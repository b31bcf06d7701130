import logging
from datetime import datetime

from sqlalchemy.orm import Session

from app.core.errors import NotFound
from app.db.models.race_calendar import RaceCalendar
from app.services.lock_clock import effective_qualifying_time

logger = logging.getLogger(__name__)


class CalendarGateway:
    """Acceso al calendario. Siempre por (season, round); el id es solo una caché."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, season: int, round: int) -> RaceCalendar | None:
        return (
            self.db.query(RaceCalendar)
            .filter(RaceCalendar.season == season, RaceCalendar.round == round)
            .first()
        )

    def get_by_id(self, race_id: int | None) -> RaceCalendar | None:
        if race_id is None:
            return None
        return self.db.get(RaceCalendar, race_id)

    def season_races(self, season: int) -> list[RaceCalendar]:
        return (
            self.db.query(RaceCalendar)
            .filter(RaceCalendar.season == season)
            .order_by(RaceCalendar.round)
            .all()
        )

    def next_race(self, season: int, now: datetime) -> RaceCalendar | None:
        """
        La próxima carrera es la de qualy efectiva más cercana en el futuro.
        Empates: qualifying_start y después sprint_qualifying_start.
        """
        upcoming = [
            race for race in self.season_races(season)
            if effective_qualifying_time(race) > now
        ]
        if not upcoming:
            return None

        return min(
            upcoming,
            key=lambda r: (
                effective_qualifying_time(r),
                r.qualifying_start,
                r.sprint_qualifying_start or datetime.max,
            ),
        )

    def first_race(self, season: int) -> RaceCalendar | None:
        races = self.season_races(season)
        if not races:
            return None
        return min(races, key=effective_qualifying_time)


def resolve_race_for(db: Session, league, round: int, cached_race_id: int | None = None) -> RaceCalendar:
    """
    Devuelve la entrada (league.season, round). Si el id cacheado apunta a otra
    fila (calendario regenerado, otra temporada...) se avisa en el log y se
    devuelve la correcta; el llamante re-apunta su referencia.
    """
    race = CalendarGateway(db).get(league.season, round)
    if race is None:
        raise NotFound(
            f"No existe la ronda {round} en el calendario {league.season}",
            {"season": league.season, "round": round},
        )

    if cached_race_id is not None and cached_race_id != race.id:
        logger.warning(
            "Referencia de carrera obsoleta reparada: liga=%s ronda=%s race_id %s -> %s",
            league.id, round, cached_race_id, race.id,
        )
    return race
