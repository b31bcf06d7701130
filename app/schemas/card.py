from pydantic import BaseModel
from typing import Any, Optional

class CardOut(BaseModel):
    id: int
    name: str
    type: str
    tier: str
    slot_cost: int
    effect_type: str
    effect_value: Any = None
    description: str = ""
    requires_target: Optional[str] = None
    is_active: bool = True

class DeckSelect(BaseModel):
    driver_card_ids: list[int]
    team_card_ids: list[int]
    edit: bool = False  # solo admins de la app, con el mazo ya cerrado

class CardActivation(BaseModel):
    driver_card_id: Optional[int] = None
    team_card_id: Optional[int] = None
    target_player_id: Optional[int] = None  # Mirror
    target_driver: Optional[str] = None     # Switcheroo
    target_team: Optional[str] = None       # Espionage
