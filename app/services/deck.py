"""
Mazo de temporada: qué cartas de la colección están activas.

Reglas de composición (se comprueban TODAS y se devuelven juntas):
    - ids existentes, activos y del tipo correcto
    - sin repetidos
    - slots de piloto == 12 y de equipo == 10 (exactos)
    - máximo 2 oros de piloto y 1 oro de equipo

El mazo se cierra 5 minutos antes de la qualy de la primera carrera y ya no
se reabre en toda la temporada.
"""
import logging
from collections import Counter
from datetime import datetime

from sqlalchemy.orm import Session

from app.core.config import (
    CARDS_MIN_SEASON,
    DECK_DRIVER_SLOTS,
    DECK_MAX_GOLD_DRIVER,
    DECK_MAX_GOLD_TEAM,
    DECK_TEAM_SLOTS,
    SELECTION_LOCK_MARGIN_MINUTES,
)
from app.core.errors import CardsUnavailable, DeckInvalid, DeckLocked, ErrorKind
from app.db.models.card import Card, CardTier, CardType
from app.db.models.card_usage import CardUsage
from app.db.models.league import League
from app.db.models.player_card import PlayerCard
from app.db.models.user import User
from app.services.calendar import CalendarGateway
from app.services.leagues import require_member
from app.services.lock_clock import is_locked, lock_time, utcnow

logger = logging.getLogger(__name__)

SLOT_LIMITS = {CardType.DRIVER: DECK_DRIVER_SLOTS, CardType.TEAM: DECK_TEAM_SLOTS}
GOLD_LIMITS = {CardType.DRIVER: DECK_MAX_GOLD_DRIVER, CardType.TEAM: DECK_MAX_GOLD_TEAM}


def list_catalog(db: Session, card_type: CardType | None = None) -> list[Card]:
    query = db.query(Card).filter(Card.is_active.is_(True))
    if card_type is not None:
        query = query.filter(Card.type == card_type)
    return query.order_by(Card.type, Card.slot_cost.desc(), Card.name).all()


def list_used_card_ids(db: Session, user: User, league: League) -> list[int]:
    require_member(league, user)
    rows = (
        db.query(CardUsage.card_id)
        .filter(
            CardUsage.user_id == user.id,
            CardUsage.league_id == league.id,
            CardUsage.season == league.season,
        )
        .all()
    )
    return [card_id for (card_id,) in rows]


def _player_cards(db: Session, user_id: int, league: League) -> dict[int, PlayerCard]:
    rows = (
        db.query(PlayerCard)
        .filter(
            PlayerCard.user_id == user_id,
            PlayerCard.league_id == league.id,
            PlayerCard.season == league.season,
        )
        .all()
    )
    return {pc.card_id: pc for pc in rows}


def list_owned_cards(db: Session, user: User, league: League) -> dict:
    require_member(league, user)
    owned = _player_cards(db, user.id, league)
    used = set(list_used_card_ids(db, user, league))

    result = {"driver_cards": [], "team_cards": [], "season": league.season}
    for card in list_catalog(db):
        entry = owned.get(card.id)
        row = card.to_dict()
        row["in_collection"] = entry is not None
        row["selected"] = bool(entry and entry.selected)
        row["used"] = card.id in used
        key = "driver_cards" if card.type == CardType.DRIVER else "team_cards"
        result[key].append(row)
    return result


def deck_summary(cards: list[Card], card_type: CardType) -> dict:
    return {
        "slots_used": sum(c.slot_cost for c in cards),
        "slots_max": SLOT_LIMITS[card_type],
        "cards_count": len(cards),
        "gold_count": sum(1 for c in cards if c.tier == CardTier.GOLD),
        "gold_max": GOLD_LIMITS[card_type],
    }


def get_deck(db: Session, user: User, league: League) -> dict:
    require_member(league, user)
    entries = (
        db.query(PlayerCard)
        .filter(
            PlayerCard.user_id == user.id,
            PlayerCard.league_id == league.id,
            PlayerCard.season == league.season,
            PlayerCard.selected.is_(True),
        )
        .all()
    )
    driver_cards = [pc.card for pc in entries if pc.card_type == CardType.DRIVER and pc.card]
    team_cards = [pc.card for pc in entries if pc.card_type == CardType.TEAM and pc.card]

    first_race = CalendarGateway(db).first_race(league.season)
    return {
        "season": league.season,
        "driver_cards": [c.to_dict() for c in driver_cards],
        "team_cards": [c.to_dict() for c in team_cards],
        "driver": deck_summary(driver_cards, CardType.DRIVER),
        "team": deck_summary(team_cards, CardType.TEAM),
        "lock_time": lock_time(first_race, SELECTION_LOCK_MARGIN_MINUTES) if first_race else None,
    }


def validate_deck(cards_by_id: dict[int, Card], ids: list[int], card_type: CardType) -> list[dict]:
    """Devuelve la lista de infracciones para un lado del mazo (vacía = válido)."""
    violations = []
    label = "piloto" if card_type == CardType.DRIVER else "equipo"

    duplicates = sorted(card_id for card_id, n in Counter(ids).items() if n > 1)
    if duplicates:
        violations.append({
            "kind": ErrorKind.DUPLICATE_CARD.value,
            "message": f"Cartas de {label} repetidas: {duplicates}",
            "card_ids": duplicates,
        })

    valid = []
    for card_id in dict.fromkeys(ids):
        card = cards_by_id.get(card_id)
        if card is None or not card.is_active or card.type != card_type:
            violations.append({
                "kind": ErrorKind.INVALID_CARD.value,
                "message": f"Carta {card_id} no válida como carta de {label}",
                "card_id": card_id,
            })
        else:
            valid.append(card)

    # Los repetidos cuentan en los slots tantas veces como aparezcan
    slots = sum(cards_by_id[i].slot_cost for i in ids if cards_by_id.get(i) in valid)
    if slots != SLOT_LIMITS[card_type]:
        violations.append({
            "kind": ErrorKind.SLOT_MISMATCH.value,
            "message": f"Las cartas de {label} deben sumar exactamente {SLOT_LIMITS[card_type]} slots (tienes {slots})",
            "slots": slots,
            "required": SLOT_LIMITS[card_type],
        })

    gold = sum(1 for c in valid if c.tier == CardTier.GOLD)
    if gold > GOLD_LIMITS[card_type]:
        violations.append({
            "kind": ErrorKind.TIER_LIMIT_EXCEEDED.value,
            "message": f"Máximo {GOLD_LIMITS[card_type]} cartas oro de {label} (tienes {gold})",
            "gold": gold,
            "max": GOLD_LIMITS[card_type],
        })

    return violations


def select_deck(
    db: Session,
    user: User,
    league: League,
    driver_card_ids: list[int],
    team_card_ids: list[int],
    edit: bool = False,
    now: datetime | None = None,
) -> dict:
    now = now or utcnow()
    require_member(league, user)

    if league.season < CARDS_MIN_SEASON:
        raise CardsUnavailable(
            f"Las cartas solo existen desde la temporada {CARDS_MIN_SEASON}",
            {"season": league.season},
        )

    # 1. Cierre de temporada (solo un admin de la app puede editar después)
    first_race = CalendarGateway(db).first_race(league.season)
    edit_allowed = edit and user.role == "admin"
    if first_race and is_locked(now, first_race, SELECTION_LOCK_MARGIN_MINUTES) and not edit_allowed:
        raise DeckLocked(
            "El mazo no se puede cambiar después del cierre de la primera carrera",
            {"lock_time": lock_time(first_race).isoformat()},
        )

    # 2. Validación completa
    all_ids = list(driver_card_ids) + list(team_card_ids)
    cards_by_id = {c.id: c for c in db.query(Card).filter(Card.id.in_(all_ids)).all()} if all_ids else {}

    violations = (
        validate_deck(cards_by_id, list(driver_card_ids), CardType.DRIVER)
        + validate_deck(cards_by_id, list(team_card_ids), CardType.TEAM)
    )
    if violations:
        raise DeckInvalid(violations)

    # 3. Desmarcar todo y marcar el mazo nuevo
    owned = _player_cards(db, user.id, league)
    for entry in owned.values():
        entry.selected = False

    for card_id in all_ids:
        entry = owned.get(card_id)
        if entry is None:
            entry = PlayerCard(
                user_id=user.id,
                league_id=league.id,
                season=league.season,
                card_id=card_id,
                card_type=cards_by_id[card_id].type,
            )
            db.add(entry)
            owned[card_id] = entry
        entry.selected = True

    db.commit()
    logger.info(
        "Mazo guardado: user=%s liga=%s pilotos=%s equipos=%s",
        user.id, league.id, list(driver_card_ids), list(team_card_ids),
    )
    return get_deck(db, user, league)
