from pydantic import BaseModel
from datetime import datetime

class SwitcherooRequest(BaseModel):
    league_id: int
    round: int
    original_driver: str
    new_driver: str

class SwitcherooOut(BaseModel):
    id: int
    league_id: int
    season: int
    round: int
    sequence: int
    original_driver: str
    new_driver: str
    time_used: datetime
    class Config:
        from_attributes = True
