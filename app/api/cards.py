from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.core.deps import get_current_user, get_db, get_rng
from app.db.models.card import CardType
from app.db.models.user import User
from app.schemas.card import CardActivation, CardOut, DeckSelect
from app.services import deck
from app.services.card_activation import activate_cards, get_race_cards
from app.services.leagues import get_league

# Cartas de la liga (mazo) y cartas por carrera (activación)
router = APIRouter(tags=["Cards"])

@router.get("/cards", response_model=list[CardOut])
def catalog(
    type: CardType | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return [c.to_dict() for c in deck.list_catalog(db, type)]

@router.get("/leagues/{league_id}/cards")
def player_cards(
    league_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    league = get_league(db, league_id)
    return deck.list_owned_cards(db, current_user, league)

@router.get("/leagues/{league_id}/cards/used")
def used_cards(
    league_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    league = get_league(db, league_id)
    return {"season": league.season, "used_card_ids": deck.list_used_card_ids(db, current_user, league)}

@router.get("/leagues/{league_id}/cards/deck")
def player_deck(
    league_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    league = get_league(db, league_id)
    return deck.get_deck(db, current_user, league)

@router.post("/leagues/{league_id}/cards/select")
def select_deck(
    league_id: int,
    data: DeckSelect,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    league = get_league(db, league_id)
    return deck.select_deck(
        db,
        current_user,
        league,
        data.driver_card_ids,
        data.team_card_ids,
        edit=data.edit,
    )

@router.post("/selections/{selection_id}/cards")
def activate(
    selection_id: int,
    data: CardActivation,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    rng=Depends(get_rng),
):
    activation = activate_cards(
        db,
        current_user,
        selection_id,
        driver_card_id=data.driver_card_id,
        team_card_id=data.team_card_id,
        target_player_id=data.target_player_id,
        target_driver=data.target_driver,
        target_team=data.target_team,
        rng=rng,
    )
    return activation.to_dict()

@router.get("/selections/{selection_id}/cards")
def race_cards(
    selection_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return get_race_cards(db, current_user, selection_id)
