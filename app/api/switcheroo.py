from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.core.deps import get_current_user, get_db
from app.db.models.user import User
from app.schemas.selection import SelectionOut
from app.schemas.switcheroo import SwitcherooOut, SwitcherooRequest
from app.services import switcheroo as switcheroo_service
from app.services.leagues import get_league, get_member_league

router = APIRouter(prefix="/switcheroo", tags=["Switcheroo"])

@router.get("/remaining")
def remaining(
    league_id: int | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    league = get_league(db, league_id)
    return switcheroo_service.remaining_switcheroos(db, current_user, league)

@router.get("/history/{league_id}", response_model=list[SwitcherooOut])
def history(
    league_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    league = get_league(db, league_id)
    return switcheroo_service.switcheroo_history(db, current_user, league)

@router.get("/window")
def window(
    league_id: int,
    round: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    league = get_member_league(db, league_id, current_user)
    return switcheroo_service.window_status(db, league, round)

@router.post("")
def perform(
    data: SwitcherooRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    league = get_league(db, data.league_id)
    result = switcheroo_service.perform_switcheroo(
        db,
        current_user,
        league,
        data.round,
        data.original_driver,
        data.new_driver,
    )
    return {
        "message": "Switcheroo realizado",
        "remaining": result["remaining"],
        "selection": SelectionOut.model_validate(result["selection"]),
        "switcheroo": SwitcherooOut.model_validate(result["switcheroo"]),
    }
