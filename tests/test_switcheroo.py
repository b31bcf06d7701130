from datetime import datetime

import pytest

from app.core.errors import (
    DuplicateDriver,
    InvalidSelection,
    NoSwitcheroosRemaining,
    NotFound,
    SwitcherooWindowClosed,
)
from app.db.models.race_selection import RaceSelection, SelectionStatus
from app.db.models.switcheroo import Switcheroo
from app.services import reuse_cycles, switcheroo

# Ronda 1: qualy 07/03 06:00, carrera 08/03 05:00
IN_WINDOW = datetime(2026, 3, 7, 8, 0)


@pytest.fixture
def selection(db, league, player, calendar_2026):
    sel = RaceSelection(
        user_id=player.id, league_id=league.id, race_id=calendar_2026[1].id, round=1,
        main_driver="Max Verstappen", reserve_driver="Isack Hadjar", team="Red Bull Racing",
        status=SelectionStatus.USER_SUBMITTED,
    )
    db.add(sel)
    db.commit()
    return sel


def swap(db, user, league, original, new, now=IN_WINDOW, round=1):
    return switcheroo.perform_switcheroo(db, user, league, round, original, new, now=now)


def test_switcheroo_replaces_driver_and_records_history(db, league, player, selection):
    result = swap(db, player, league, "verstappen", "Norris")

    assert result["selection"].main_driver == "Lando Norris"
    assert result["selection"].reserve_driver == "Isack Hadjar"
    assert result["remaining"] == 2
    assert result["switcheroo"].sequence == 1
    assert result["switcheroo"].original_driver == "Max Verstappen"

    ledger = reuse_cycles.get_or_create_ledger(db, player.id, league.id)
    assert reuse_cycles.get_used(ledger, "driver") == ["Lando Norris", "Isack Hadjar"]

    history = switcheroo.switcheroo_history(db, player, league)
    assert [h.new_driver for h in history] == ["Lando Norris"]


def test_reserve_driver_can_be_switched(db, league, player, selection):
    result = swap(db, player, league, "Hadjar", "Piastri")
    assert result["selection"].reserve_driver == "Oscar Piastri"
    assert result["selection"].main_driver == "Max Verstappen"


def test_window_is_closed_before_it_opens_and_after_race(db, league, player, selection):
    with pytest.raises(SwitcherooWindowClosed):
        swap(db, player, league, "Max Verstappen", "Lando Norris", now=datetime(2026, 3, 7, 6, 30))
    with pytest.raises(SwitcherooWindowClosed):
        swap(db, player, league, "Max Verstappen", "Lando Norris", now=datetime(2026, 3, 8, 4, 56))

    status = switcheroo.window_status(db, league, 1, now=IN_WINDOW)
    assert status["is_switcheroo_allowed"] is True
    assert status["opens_at"] == datetime(2026, 3, 7, 7, 0)
    assert status["closes_at"] == datetime(2026, 3, 8, 4, 55)


def test_three_switcheroos_per_season(db, league, player, selection):
    swap(db, player, league, "Max Verstappen", "Lando Norris")
    swap(db, player, league, "Lando Norris", "Oscar Piastri")
    swap(db, player, league, "Oscar Piastri", "Charles Leclerc")

    with pytest.raises(NoSwitcheroosRemaining):
        swap(db, player, league, "Charles Leclerc", "Lewis Hamilton")

    assert switcheroo.remaining_switcheroos(db, player, league) == {"remaining": 0, "used": 3, "total": 3}
    db.refresh(selection)
    assert selection.main_driver == "Charles Leclerc"


def test_original_driver_must_be_in_selection(db, league, player, selection):
    with pytest.raises(InvalidSelection):
        swap(db, player, league, "Lewis Hamilton", "Lando Norris")


def test_new_driver_cannot_already_be_in_selection(db, league, player, selection):
    with pytest.raises(DuplicateDriver):
        swap(db, player, league, "Max Verstappen", "Isack Hadjar")


def test_switcheroo_needs_a_selection(db, league, owner, calendar_2026):
    with pytest.raises(NotFound):
        swap(db, owner, league, "Max Verstappen", "Lando Norris")


def test_concurrent_switcheroo_leaves_selection_untouched(db, league, player, selection, monkeypatch):
    db.add(Switcheroo(
        user_id=player.id, league_id=league.id, season=2026, round=1, sequence=1,
        original_driver="Isack Hadjar", new_driver="Isack Hadjar", time_used=IN_WINDOW,
    ))
    db.commit()
    # Simula una lectura del cupo anterior al insert de la otra petición
    monkeypatch.setattr(switcheroo, "_used_count", lambda db, user_id, league: 0)

    with pytest.raises(NoSwitcheroosRemaining):
        swap(db, player, league, "Max Verstappen", "Lando Norris")

    db.expire_all()
    stored = db.get(RaceSelection, selection.id)
    assert stored.main_driver == "Max Verstappen"
    assert db.query(Switcheroo).count() == 1
