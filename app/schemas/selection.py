from pydantic import BaseModel
from datetime import datetime
from typing import Optional
from app.db.models.race_selection import SelectionStatus

# Esquemas para el calendario
class RaceOut(BaseModel):
    id: int
    season: int
    round: int
    race_name: str
    circuit: Optional[str] = None
    country: Optional[str] = None
    qualifying_start: datetime
    race_start: datetime
    is_sprint_weekend: bool = False
    sprint_qualifying_start: Optional[datetime] = None
    sprint_start: Optional[datetime] = None
    class Config:
        from_attributes = True

# Esquemas para selecciones
class SelectionSave(BaseModel):
    league_id: int
    main_driver: str
    reserve_driver: str
    team: str

class AdminOverride(BaseModel):
    league_id: int
    user_id: int
    race_id: int
    main_driver: str
    reserve_driver: str
    team: str
    assign_points: bool = False
    notes: str = ""

class SelectionOut(BaseModel):
    id: Optional[int] = None  # None = todavía no guardada
    user_id: int
    league_id: int
    race_id: int
    round: int
    main_driver: Optional[str] = None
    reserve_driver: Optional[str] = None
    team: Optional[str] = None
    status: SelectionStatus
    points: int = 0
    point_breakdown: Optional[dict] = None
    is_admin_assigned: bool = False
    is_auto_assigned: bool = False
    assigned_by_id: Optional[int] = None
    assigned_at: Optional[datetime] = None
    notes: Optional[str] = ""
    class Config:
        from_attributes = True

class CurrentSelectionOut(BaseModel):
    selection: SelectionOut
    race: RaceOut
    is_locked: bool
    lock_time: datetime

class UsedSelectionsOut(BaseModel):
    user_id: int
    league_id: int
    round: Optional[int] = None
    used_drivers: list[str]
    used_teams: list[str]
    available_drivers: list[str]
    available_teams: list[str]
    driver_cycle: int
    team_cycle: int

class RaceSelectionRow(BaseModel):
    user_id: int
    username: str
    has_selection: bool
    status: str
    main_driver: Optional[str] = None
    reserve_driver: Optional[str] = None
    team: Optional[str] = None
    points: int = 0

class RaceSelectionsOut(BaseModel):
    race: RaceOut
    is_locked: bool
    selections: list[RaceSelectionRow]

class AutoAssignRequest(BaseModel):
    season: int
    round: int

class RebuildUsedRequest(BaseModel):
    league_id: int
    user_id: Optional[int] = None  # None = todos los miembros
