# Importa todos los modelos para que Base.metadata los registre antes de create_all
from app.db.models.user import User
from app.db.models.league import League, LeagueMember
from app.db.models.race_calendar import RaceCalendar
from app.db.models.race_result import RaceResult
from app.db.models.race_selection import RaceSelection
from app.db.models.used_selection import UsedSelection
from app.db.models.card import Card
from app.db.models.player_card import PlayerCard
from app.db.models.card_usage import CardUsage
from app.db.models.race_card_selection import RaceCardSelection
from app.db.models.switcheroo import Switcheroo

__all__ = [
    "User",
    "League",
    "LeagueMember",
    "RaceCalendar",
    "RaceResult",
    "RaceSelection",
    "UsedSelection",
    "Card",
    "PlayerCard",
    "CardUsage",
    "RaceCardSelection",
    "Switcheroo",
]
