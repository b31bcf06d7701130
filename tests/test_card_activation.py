import random
from datetime import datetime, timedelta

import pytest

from conftest import NOW
from app.core.errors import (
    AlreadyUsedThisSeason,
    CardsUnavailable,
    Conflict,
    DeadlinePassed,
    Forbidden,
    InvalidCard,
    InvalidInput,
    NotInDeck,
    TargetRequired,
)
from app.db.models.card import CardType, MYSTERY_EFFECT
from app.db.models.card_usage import CardUsage
from app.db.models.player_card import PlayerCard
from app.db.models.race_card_selection import RaceCardSelection
from app.db.models.race_selection import RaceSelection, SelectionStatus
from app.services import card_activation

DECK = [
    "2× Points", "Mirror", "Switcheroo", "Mystery Card", "+3 Points", "Top 10 Boost",
    "team:Espionage", "team:Mystery Card", "team:Sponsors",
]


@pytest.fixture
def give_deck(db, cards):
    def _give(user, league, names=DECK):
        for name in names:
            card = cards[name]
            db.add(PlayerCard(
                user_id=user.id, league_id=league.id, season=league.season,
                card_id=card.id, card_type=card.type, selected=True,
            ))
        db.commit()
    return _give


@pytest.fixture
def make_selection(db):
    def _make(user, league, race, main="Max Verstappen", reserve="Isack Hadjar", team="Red Bull Racing"):
        sel = RaceSelection(
            user_id=user.id, league_id=league.id, race_id=race.id, round=race.round,
            main_driver=main, reserve_driver=reserve, team=team,
            status=SelectionStatus.USER_SUBMITTED,
        )
        db.add(sel)
        db.commit()
        db.refresh(sel)
        return sel
    return _make


@pytest.fixture
def ready(league, player, calendar_2026, give_deck, make_selection):
    """Jugador con mazo y selecciones en las rondas 2 y 5."""
    give_deck(player, league)
    return {
        2: make_selection(player, league, calendar_2026[2]),
        5: make_selection(player, league, calendar_2026[5]),
    }


def activate(db, user, selection, rng=None, now=NOW, **kwargs):
    return card_activation.activate_cards(db, user, selection.id, rng=rng or random.Random(7), now=now, **kwargs)


def usages(db, user):
    return db.query(CardUsage).filter_by(user_id=user.id).all()


# --- Mystery / Random ---

def test_mystery_card_transforms_once(db, player, cards, ready):
    first = activate(db, player, ready[2], driver_card_id=cards["Mystery Card"].id, rng=random.Random(1))
    transformed = first.mystery_transformed_card_id
    assert transformed is not None

    for seed in (2, 3, 99):
        again = activate(db, player, ready[2], driver_card_id=cards["Mystery Card"].id, rng=random.Random(seed))
        assert again.mystery_transformed_card_id == transformed

    stored = card_activation.get_race_cards(db, player, ready[2].id)
    assert stored["cards"]["mystery_transformed_card"]["id"] == transformed


def test_mystery_pool_excludes_mystery_cards(db, cards):
    for seed in range(40):
        card = card_activation.draw_mystery(db, random.Random(seed))
        assert card.type == CardType.DRIVER
        assert card.effect_type != MYSTERY_EFFECT


def test_random_team_card_is_drawn_from_team_cards(db, player, cards, ready):
    activation = activate(db, player, ready[2], team_card_id=cards["team:Mystery Card"].id)

    drawn = activation.random_transformed_card
    assert drawn is not None
    assert drawn.type == CardType.TEAM
    assert activation.mystery_transformed_card_id is None


def test_switching_away_from_mystery_discards_transformation(db, player, cards, ready):
    activate(db, player, ready[2], driver_card_id=cards["Mystery Card"].id)
    activation = activate(db, player, ready[2], driver_card_id=cards["+3 Points"].id)
    assert activation.mystery_transformed_card_id is None


# --- Usos por temporada ---

def test_card_used_in_another_round_is_rejected(db, player, cards, ready):
    activate(db, player, ready[2], driver_card_id=cards["+3 Points"].id)

    with pytest.raises(AlreadyUsedThisSeason) as exc:
        activate(db, player, ready[5], driver_card_id=cards["+3 Points"].id)
    assert exc.value.details["round"] == 2


def test_reactivating_same_card_for_same_round_is_allowed(db, player, cards, ready):
    activate(db, player, ready[5], driver_card_id=cards["+3 Points"].id)
    activation = activate(db, player, ready[5], driver_card_id=cards["+3 Points"].id)

    assert activation.driver_card_id == cards["+3 Points"].id
    assert len(usages(db, player)) == 1
    assert db.query(RaceCardSelection).count() == 1


def test_changing_card_frees_previous_usage(db, player, cards, ready):
    activate(db, player, ready[2], driver_card_id=cards["+3 Points"].id)
    activate(db, player, ready[2], driver_card_id=cards["Top 10 Boost"].id)

    assert [u.card_id for u in usages(db, player)] == [cards["Top 10 Boost"].id]

    activation = activate(db, player, ready[5], driver_card_id=cards["+3 Points"].id)
    assert activation.round == 5


def test_driver_and_team_cards_together(db, player, cards, ready):
    activation = activate(
        db, player, ready[2],
        driver_card_id=cards["2× Points"].id,
        team_card_id=cards["team:Sponsors"].id,
    )

    assert activation.driver_card_id == cards["2× Points"].id
    assert activation.team_card_id == cards["team:Sponsors"].id
    assert {u.card_type for u in usages(db, player)} == {CardType.DRIVER, CardType.TEAM}


def test_concurrent_usage_insert_maps_to_already_used(db, player, league, cards, ready, monkeypatch):
    def double_insert(db, user, league, round, old_ids, new_cards):
        for _ in range(2):
            db.add(CardUsage(
                user_id=user.id, league_id=league.id, season=league.season,
                card_id=cards["+3 Points"].id, card_type=CardType.DRIVER, round=round,
            ))

    monkeypatch.setattr(card_activation, "reconcile_usage", double_insert)

    with pytest.raises(AlreadyUsedThisSeason):
        activate(db, player, ready[2], driver_card_id=cards["+3 Points"].id)

    assert db.query(RaceCardSelection).count() == 0
    assert usages(db, player) == []


def test_concurrent_activation_for_same_race_is_a_conflict(db, player, league, cards, ready, calendar_2026, monkeypatch):
    db.add(RaceCardSelection(user_id=player.id, league_id=league.id, race_id=calendar_2026[2].id, round=2))
    db.commit()
    # La otra activación aún no era visible al leer
    monkeypatch.setattr(card_activation, "find_activation", lambda db, user_id, league_id, race: None)

    with pytest.raises(Conflict):
        activate(db, player, ready[2], driver_card_id=cards["+3 Points"].id)

    assert usages(db, player) == []
    stored = db.query(RaceCardSelection).one()
    assert stored.driver_card_id is None


# --- Validaciones ---

def test_card_must_be_in_deck(db, player, cards, ready):
    with pytest.raises(NotInDeck):
        activate(db, player, ready[2], driver_card_id=cards["Competitiveness"].id)


def test_card_type_must_match_slot(db, player, cards, ready):
    with pytest.raises(InvalidCard):
        activate(db, player, ready[2], driver_card_id=cards["team:Sponsors"].id)


@pytest.mark.parametrize("card_name,field", [
    ("Mirror", "driver_card_id"),
    ("Switcheroo", "driver_card_id"),
    ("team:Espionage", "team_card_id"),
])
def test_targeted_cards_require_target(db, player, cards, ready, card_name, field):
    with pytest.raises(TargetRequired):
        activate(db, player, ready[2], **{field: cards[card_name].id})


def test_targets_are_validated_and_canonicalized(db, owner, player, cards, ready):
    with pytest.raises(InvalidInput):
        activate(db, player, ready[2], driver_card_id=cards["Mirror"].id, target_player_id=player.id)

    mirror = activate(db, player, ready[2], driver_card_id=cards["Mirror"].id, target_player_id=owner.id)
    assert mirror.target_player_id == owner.id

    switch = activate(db, player, ready[5], driver_card_id=cards["Switcheroo"].id, target_driver="leclerc",
                      team_card_id=cards["team:Espionage"].id, target_team="scuderia ferrari")
    assert switch.target_driver == "Charles Leclerc"
    assert switch.target_team == "Ferrari"


def test_no_cards_on_sprint_weekend(db, league, player, cards, calendar_2026, give_deck, make_selection):
    give_deck(player, league)
    sel = make_selection(player, league, calendar_2026[4])
    with pytest.raises(CardsUnavailable):
        activate(db, player, sel, driver_card_id=cards["+3 Points"].id)


def test_no_cards_before_2026(db, make_league, make_race, owner, player, cards, give_deck, make_selection):
    league = make_league(owner, members=[player], season=2025)
    race = make_race(2025, 1, datetime(2025, 3, 15, 5, 0))
    give_deck(player, league)
    sel = make_selection(player, league, race)
    with pytest.raises(CardsUnavailable):
        activate(db, player, sel, driver_card_id=cards["+3 Points"].id, now=datetime(2025, 3, 1))


def test_deadline_is_qualifying_lock(db, player, cards, ready, calendar_2026):
    quali = calendar_2026[2].qualifying_start
    with pytest.raises(DeadlinePassed):
        activate(db, player, ready[2], driver_card_id=cards["+3 Points"].id, now=quali - timedelta(minutes=5))

    activation = activate(db, player, ready[2], driver_card_id=cards["+3 Points"].id,
                          now=quali - timedelta(minutes=6))
    assert activation.round == 2


def test_only_owner_of_selection_can_activate(db, owner, cards, ready):
    with pytest.raises(Forbidden):
        activate(db, owner, ready[2], driver_card_id=cards["+3 Points"].id)


def test_stale_race_reference_is_healed(db, league, player, cards, make_race, calendar_2026, give_deck, make_selection):
    give_deck(player, league)
    old_race = make_race(2025, 2, datetime(2025, 3, 8, 6, 0))
    sel = make_selection(player, league, old_race)

    activation = activate(db, player, sel, driver_card_id=cards["+3 Points"].id)

    assert activation.race_id == calendar_2026[2].id
    db.refresh(sel)
    assert sel.race_id == calendar_2026[2].id


def test_race_cards_view_without_activation(db, player, ready, calendar_2026):
    view = card_activation.get_race_cards(db, player, ready[5].id)
    assert view == {"selection_id": ready[5].id, "round": 5, "race_id": calendar_2026[5].id, "cards": None}
