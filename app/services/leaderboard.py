import logging
from sqlalchemy import func
from sqlalchemy.orm import Session
from app.db.models.league import League
from app.db.models.race_selection import RaceSelection
from app.db.models.user import User

logger = logging.getLogger(__name__)


class LeaderboardService:
    """Clasificación de una liga a partir de los puntos guardados en las selecciones."""

    def update_standings(self, db: Session, league_id: int, race_id: int | None = None):
        league = db.get(League, league_id)
        if league is None:
            return []

        totals = dict(
            db.query(
                RaceSelection.user_id,
                func.coalesce(func.sum(RaceSelection.points), 0),
            )
            .filter(RaceSelection.league_id == league_id)
            .group_by(RaceSelection.user_id)
            .all()
        )

        member_ids = league.member_ids() | {league.owner_id}
        users = db.query(User).filter(User.id.in_(member_ids)).all()

        standings = sorted(
            (
                {"user_id": u.id, "username": u.username, "points": int(totals.get(u.id, 0))}
                for u in users
            ),
            key=lambda row: (-row["points"], row["username"]),
        )
        for position, row in enumerate(standings, start=1):
            row["position"] = position

        logger.info("Clasificación recalculada: liga=%s carrera=%s", league_id, race_id)
        return standings
