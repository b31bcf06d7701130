from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.core.deps import (
    get_current_user,
    get_db,
    get_leaderboard_service,
    get_scoring_service,
    require_admin,
)
from app.db.models.user import User
from app.schemas.selection import (
    AdminOverride,
    AutoAssignRequest,
    CurrentSelectionOut,
    RaceSelectionsOut,
    RebuildUsedRequest,
    SelectionOut,
    SelectionSave,
    UsedSelectionsOut,
)
from app.services import reuse_cycles
from app.services.auto_selection import auto_assign_for_round
from app.services.leagues import get_league, get_member_league, require_league_admin
from app.services.selections import (
    admin_override,
    get_or_init_selection,
    list_race_selections,
    save_selection,
)

router = APIRouter(prefix="/selections", tags=["Selections"])

@router.get("/current", response_model=CurrentSelectionOut)
def current_selection(
    league_id: int | None = None,
    round: int | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    league = get_league(db, league_id)
    return get_or_init_selection(db, current_user, league, round)

@router.get("/used", response_model=UsedSelectionsOut)
def used_selections(
    league_id: int | None = None,
    round: int | None = None,
    user_id: int | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    league = get_member_league(db, league_id, current_user)

    # Ver lo de otro jugador solo si eres admin de la liga
    target_id = user_id or current_user.id
    if target_id != current_user.id:
        require_league_admin(league, current_user)

    if round is not None:
        view = reuse_cycles.compute_used_for_round(db, target_id, league, round)
    else:
        view = reuse_cycles.ledger_view(db, target_id, league)

    return {"user_id": target_id, "league_id": league.id, **view}

@router.post("/save", response_model=SelectionOut)
def save(
    data: SelectionSave,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    league = get_league(db, data.league_id)
    return save_selection(
        db,
        current_user,
        league,
        data.main_driver,
        data.reserve_driver,
        data.team,
    )

@router.post("/admin/override", response_model=SelectionOut)
def override(
    data: AdminOverride,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    scoring=Depends(get_scoring_service),
    leaderboard=Depends(get_leaderboard_service),
):
    league = get_league(db, data.league_id)
    return admin_override(
        db,
        actor=current_user,
        target_user_id=data.user_id,
        league=league,
        race_id=data.race_id,
        main_driver=data.main_driver,
        reserve_driver=data.reserve_driver,
        team=data.team,
        assign_points=data.assign_points,
        notes=data.notes,
        scoring=scoring,
        leaderboard=leaderboard,
    )

@router.get("/league/{league_id}/race/{round}", response_model=RaceSelectionsOut)
def race_selections(
    league_id: int,
    round: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    league = get_league(db, league_id)
    return list_race_selections(db, current_user, league, round)

@router.post("/admin/auto-assign")
def auto_assign(
    data: AutoAssignRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return auto_assign_for_round(db, data.season, data.round)

@router.post("/admin/rebuild-used")
def rebuild_used(
    data: RebuildUsedRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    league = get_league(db, data.league_id)
    require_league_admin(league, current_user)

    user_ids = [data.user_id] if data.user_id else sorted(league.member_ids() | {league.owner_id})
    rebuilt = []
    for user_id in user_ids:
        ledger = reuse_cycles.rebuild_ledger(db, user_id, league)
        rebuilt.append({
            "user_id": user_id,
            "driver_cycles": ledger.driver_cycles,
            "team_cycles": ledger.team_cycles,
        })
    return {"league_id": league.id, "rebuilt": rebuilt}
