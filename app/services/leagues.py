from sqlalchemy.orm import Session
from app.core.errors import Forbidden, InvalidInput, NotFound
from app.db.models.league import League
from app.db.models.user import User


def get_league(db: Session, league_id: int | None) -> League:
    if league_id is None:
        raise InvalidInput("Falta la liga")
    league = db.get(League, league_id)
    if league is None:
        raise NotFound("Liga no encontrada", {"league_id": league_id})
    return league


def require_member(league: League, user: User):
    if not league.is_member(user.id):
        raise Forbidden("No perteneces a esta liga", {"league_id": league.id})


def require_league_admin(league: League, user: User):
    if not league.is_admin(user.id):
        raise Forbidden("Solo el dueño o un admin de la liga puede hacer esto", {"league_id": league.id})


def get_member_league(db: Session, league_id: int | None, user: User) -> League:
    league = get_league(db, league_id)
    require_member(league, user)
    return league
