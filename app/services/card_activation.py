"""
Activación de cartas de poder para una carrera.

Orden de comprobaciones en ``activate_cards``:
    1. Carrera de la selección (reparando la referencia si es de otra temporada)
    2. Temporada con cartas y fin de semana sin sprint
    3. Plazo: antes del cierre de qualy y antes de la carrera
    4. Carta en el mazo y sin gastar en otra ronda
    5. Objetivo obligatorio según la carta
    6. Transformación de Mystery/Random (una sola vez)
    7. Upsert de la activación y reconciliación de card_usages
"""
import logging
import random
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core import f1_data
from app.core.config import CARDS_MIN_SEASON, SELECTION_LOCK_MARGIN_MINUTES
from app.core.errors import (
    AlreadyUsedThisSeason,
    CardsUnavailable,
    Conflict,
    DeadlinePassed,
    Forbidden,
    InvalidCard,
    InvalidInput,
    NotFound,
    NotInDeck,
    TargetRequired,
)
from app.db.models.card import Card, CardTarget, CardType, MYSTERY_EFFECT, RANDOM_EFFECT
from app.db.models.card_usage import USAGE_CONSTRAINT, CardUsage
from app.db.models.league import League
from app.db.models.player_card import PlayerCard
from app.db.models.race_calendar import RaceCalendar
from app.db.models.race_card_selection import RaceCardSelection
from app.db.models.race_selection import RaceSelection
from app.db.models.user import User
from app.services.calendar import resolve_race_for
from app.services.lock_clock import is_locked, lock_time, utcnow
from app.services.selections import heal_race_reference

logger = logging.getLogger(__name__)


def _load_selection(db: Session, selection_id: int) -> RaceSelection:
    selection = db.get(RaceSelection, selection_id)
    if selection is None:
        raise NotFound("Selección no encontrada", {"selection_id": selection_id})
    return selection


def resolve_selection_race(db: Session, selection: RaceSelection, league: League) -> RaceCalendar:
    """Carrera (temporada de la liga, ronda de la selección), re-apuntando si hace falta."""
    race = resolve_race_for(db, league, selection.round, cached_race_id=selection.race_id)
    heal_race_reference(selection, race)
    return race


def find_activation(db: Session, user_id: int, league_id: int, race: RaceCalendar) -> RaceCardSelection | None:
    activation = (
        db.query(RaceCardSelection)
        .filter(
            RaceCardSelection.user_id == user_id,
            RaceCardSelection.league_id == league_id,
            RaceCardSelection.race_id == race.id,
        )
        .first()
    )
    if activation is not None:
        return activation

    # Activación guardada contra una fila de calendario antigua
    activation = (
        db.query(RaceCardSelection)
        .filter(
            RaceCardSelection.user_id == user_id,
            RaceCardSelection.league_id == league_id,
            RaceCardSelection.round == race.round,
        )
        .first()
    )
    if activation is not None and activation.race_id != race.id:
        logger.warning(
            "Activación %s apuntaba a race_id=%s, re-apuntada a %s",
            activation.id, activation.race_id, race.id,
        )
        activation.race_id = race.id
    return activation


def _check_card(db: Session, user: User, league: League, card_id: int, card_type: CardType, round: int) -> Card:
    card = db.get(Card, card_id)
    if card is None or card.type != card_type:
        raise InvalidCard(f"La carta {card_id} no es una carta de {card_type.value}", {"card_id": card_id})

    in_deck = (
        db.query(PlayerCard)
        .filter(
            PlayerCard.user_id == user.id,
            PlayerCard.league_id == league.id,
            PlayerCard.season == league.season,
            PlayerCard.card_id == card_id,
            PlayerCard.card_type == card_type,
            PlayerCard.selected.is_(True),
        )
        .first()
    )
    if in_deck is None:
        raise NotInDeck(f"La carta {card.name} no está en tu mazo", {"card_id": card_id})

    # El uso de ESTA ronda (edición) no cuenta
    usage = (
        db.query(CardUsage)
        .filter(
            CardUsage.user_id == user.id,
            CardUsage.league_id == league.id,
            CardUsage.season == league.season,
            CardUsage.card_id == card_id,
            CardUsage.round != round,
        )
        .first()
    )
    if usage is not None:
        raise AlreadyUsedThisSeason(
            f"La carta {card.name} ya se usó esta temporada (ronda {usage.round})",
            {"card_id": card_id, "round": usage.round},
        )
    return card


def _check_targets(
    db: Session,
    user: User,
    league: League,
    cards: list[Card],
    target_player_id: int | None,
    target_driver: str | None,
    target_team: str | None,
) -> dict:
    targets = {"target_player_id": None, "target_driver": None, "target_team": None}

    for card in cards:
        if card.requires_target == CardTarget.PLAYER:
            if not target_player_id:
                raise TargetRequired(f"{card.name} necesita un jugador objetivo", {"card_id": card.id})
            if target_player_id == user.id or not league.is_member(target_player_id):
                raise InvalidInput("El jugador objetivo debe ser otro miembro de la liga", {"target_player_id": target_player_id})
            targets["target_player_id"] = target_player_id

        elif card.requires_target == CardTarget.DRIVER:
            if not target_driver:
                raise TargetRequired(f"{card.name} necesita un piloto objetivo", {"card_id": card.id})
            targets["target_driver"] = f1_data.canonical_driver(league.season, target_driver)

        elif card.requires_target == CardTarget.TEAM:
            if not target_team:
                raise TargetRequired(f"{card.name} necesita un equipo objetivo", {"card_id": card.id})
            targets["target_team"] = f1_data.canonical_team(league.season, target_team)

    return targets


def draw_mystery(db: Session, rng: random.Random) -> Card:
    pool = (
        db.query(Card)
        .filter(Card.type == CardType.DRIVER, Card.is_active.is_(True), Card.effect_type != MYSTERY_EFFECT)
        .order_by(Card.id)
        .all()
    )
    if not pool:
        raise InvalidCard("No hay cartas de piloto para transformar la Mystery Card")
    return rng.choice(pool)


def draw_random_team(db: Session, rng: random.Random) -> Card:
    pool = (
        db.query(Card)
        .filter(Card.type == CardType.TEAM, Card.is_active.is_(True))
        .order_by(Card.id)
        .all()
    )
    if not pool:
        raise InvalidCard("No hay cartas de equipo para la carta aleatoria")
    return rng.choice(pool)


def activate_cards(
    db: Session,
    user: User,
    selection_id: int,
    driver_card_id: int | None = None,
    team_card_id: int | None = None,
    target_player_id: int | None = None,
    target_driver: str | None = None,
    target_team: str | None = None,
    rng: random.Random | None = None,
    now: datetime | None = None,
) -> RaceCardSelection:
    now = now or utcnow()
    rng = rng or random.Random()

    selection = _load_selection(db, selection_id)
    if selection.user_id != user.id:
        raise Forbidden("Solo puedes activar cartas en tus propias selecciones")
    league = selection.league

    # 1. Carrera
    race = resolve_selection_race(db, selection, league)

    # 2. Temporada / sprint
    if league.season < CARDS_MIN_SEASON:
        raise CardsUnavailable(
            f"Las cartas solo están disponibles desde la temporada {CARDS_MIN_SEASON}",
            {"season": league.season},
        )
    if race.is_sprint_weekend:
        raise CardsUnavailable("No se pueden usar cartas en fines de semana sprint", {"round": race.round})

    # 3. Plazo
    if is_locked(now, race, SELECTION_LOCK_MARGIN_MINUTES) or now >= race.race_start:
        raise DeadlinePassed(
            "Las cartas se eligen antes de la clasificación",
            {"round": race.round, "lock_time": lock_time(race).isoformat()},
        )

    # 4. Mazo y usos
    driver_card = _check_card(db, user, league, driver_card_id, CardType.DRIVER, race.round) if driver_card_id else None
    team_card = _check_card(db, user, league, team_card_id, CardType.TEAM, race.round) if team_card_id else None

    # 5. Objetivos
    targets = _check_targets(
        db, user, league,
        [c for c in (driver_card, team_card) if c],
        target_player_id, target_driver, target_team,
    )

    activation = find_activation(db, user.id, league.id, race)
    old_ids = set()
    if activation is not None:
        old_ids = {i for i in (activation.driver_card_id, activation.team_card_id) if i}

    # 6. Transformaciones: si la misma carta ya se transformó para esta carrera, se respeta
    mystery_id = None
    if driver_card and driver_card.effect_type == MYSTERY_EFFECT:
        if activation and activation.driver_card_id == driver_card.id and activation.mystery_transformed_card_id:
            mystery_id = activation.mystery_transformed_card_id
        else:
            mystery_id = draw_mystery(db, rng).id
            logger.info("Mystery Card transformada: user=%s ronda=%s -> carta %s", user.id, race.round, mystery_id)

    random_id = None
    if team_card and team_card.effect_type == RANDOM_EFFECT:
        if activation and activation.team_card_id == team_card.id and activation.random_transformed_card_id:
            random_id = activation.random_transformed_card_id
        else:
            random_id = draw_random_team(db, rng).id
            logger.info("Carta aleatoria de equipo transformada: user=%s ronda=%s -> carta %s", user.id, race.round, random_id)

    # 7. Persistir
    if activation is None:
        activation = RaceCardSelection(user_id=user.id, league_id=league.id, race_id=race.id, round=race.round)
        db.add(activation)

    activation.round = race.round
    activation.driver_card_id = driver_card.id if driver_card else None
    activation.team_card_id = team_card.id if team_card else None
    activation.target_player_id = targets["target_player_id"]
    activation.target_driver = targets["target_driver"]
    activation.target_team = targets["target_team"]
    activation.mystery_transformed_card_id = mystery_id
    activation.random_transformed_card_id = random_id
    activation.selected_at = now

    new_cards = {c.id: c for c in (driver_card, team_card) if c}
    reconcile_usage(db, user, league, race.round, old_ids, new_cards)

    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if _is_usage_clash(exc):
            # Otra petición gastó la carta entre la validación y el insert
            raise AlreadyUsedThisSeason(
                "La carta ya se usó esta temporada",
                {"card_ids": list(new_cards)},
            )
        logger.warning("Activación simultánea para la misma carrera: user=%s ronda=%s", user.id, race.round)
        raise Conflict(
            "Otra activación para esta carrera se guardó a la vez; vuelve a intentarlo",
            {"round": race.round},
        )

    db.refresh(activation)
    return activation


def _is_usage_clash(exc: IntegrityError) -> bool:
    # SQLite nombra la tabla; PostgreSQL nombra la restricción
    message = str(exc.orig)
    return CardUsage.__tablename__ in message or USAGE_CONSTRAINT in message


def reconcile_usage(db: Session, user: User, league: League, round: int, old_ids: set, new_cards: dict):
    base = db.query(CardUsage).filter(
        CardUsage.user_id == user.id,
        CardUsage.league_id == league.id,
        CardUsage.season == league.season,
    )

    # Cartas sustituidas en esta ronda: se libera su uso
    for card_id in old_ids - set(new_cards):
        base.filter(CardUsage.card_id == card_id, CardUsage.round == round).delete(synchronize_session=False)

    for card_id, card in new_cards.items():
        exists = base.filter(CardUsage.card_id == card_id).first()
        if exists is None:
            db.add(CardUsage(
                user_id=user.id,
                league_id=league.id,
                season=league.season,
                card_id=card_id,
                card_type=card.type,
                round=round,
            ))


def get_race_cards(db: Session, user: User, selection_id: int) -> dict:
    selection = _load_selection(db, selection_id)
    league = selection.league
    if selection.user_id != user.id and not league.is_member(user.id):
        raise Forbidden("No puedes ver las cartas de esta selección")

    race = resolve_selection_race(db, selection, league)
    activation = find_activation(db, selection.user_id, league.id, race)
    db.commit()

    return {
        "selection_id": selection.id,
        "round": race.round,
        "race_id": race.id,
        "cards": activation.to_dict() if activation else None,
    }
