from datetime import datetime

import pytest

from conftest import NOW
from app.core.errors import NotFound
from app.db.models.race_selection import RaceSelection, SelectionStatus
from app.db.models.used_selection import UsedSelection
from app.services import auto_selection, reuse_cycles

AFTER_LOCK = datetime(2026, 3, 7, 6, 0)


def test_nothing_assigned_before_lock(db, league, calendar_2026):
    result = auto_selection.auto_assign_for_round(db, 2026, 1, now=NOW)
    assert result["success"] is False
    assert db.query(RaceSelection).count() == 0


def test_unknown_round(db, calendar_2026):
    with pytest.raises(NotFound):
        auto_selection.auto_assign_for_round(db, 2026, 12, now=AFTER_LOCK)


def test_missing_selections_get_first_available_picks(db, league, owner, player, calendar_2026):
    result = auto_selection.auto_assign_for_round(db, 2026, 1, now=AFTER_LOCK)

    assert result["success"] is True
    assert result["assigned"] == 2
    sel = db.query(RaceSelection).filter_by(user_id=player.id, round=1).one()
    assert sel.picks() == {
        "main_driver": "Max Verstappen",
        "reserve_driver": "Isack Hadjar",
        "team": "Red Bull Racing",
    }
    assert sel.status == SelectionStatus.AUTO_ASSIGNED
    assert sel.is_auto_assigned is True
    assert sel.notes == auto_selection.AUTO_NOTE

    ledger = reuse_cycles.get_or_create_ledger(db, player.id, league.id)
    assert reuse_cycles.get_used(ledger, "team") == ["Red Bull Racing"]


def test_used_drivers_and_teams_are_skipped(db, league, player, calendar_2026):
    db.add(RaceSelection(
        user_id=player.id, league_id=league.id, race_id=calendar_2026[1].id, round=1,
        main_driver="Max Verstappen", reserve_driver="George Russell", team="Red Bull Racing",
        status=SelectionStatus.USER_SUBMITTED,
    ))
    db.commit()

    auto_selection.auto_assign_for_round(db, 2026, 2, now=datetime(2026, 3, 14, 6, 0))

    sel = db.query(RaceSelection).filter_by(user_id=player.id, round=2).one()
    assert sel.main_driver == "Isack Hadjar"
    assert sel.reserve_driver == "Kimi Antonelli"
    assert sel.team == "Mercedes"


def test_complete_selections_are_left_alone(db, league, owner, player, calendar_2026):
    db.add(RaceSelection(
        user_id=player.id, league_id=league.id, race_id=calendar_2026[1].id, round=1,
        main_driver="Lando Norris", reserve_driver="Oscar Piastri", team="McLaren",
        status=SelectionStatus.USER_SUBMITTED,
    ))
    db.commit()

    result = auto_selection.auto_assign_for_round(db, 2026, 1, now=AFTER_LOCK)

    assert result["assigned"] == 1
    assert result["skipped"] == 1
    assert [r["user_id"] for r in result["results"]] == [owner.id]
    sel = db.query(RaceSelection).filter_by(user_id=player.id, round=1).one()
    assert sel.status == SelectionStatus.USER_SUBMITTED


def test_pick_respects_cycle_rollover_between_main_and_reserve():
    drivers = [
        "Isack Hadjar", "George Russell", "Kimi Antonelli", "Charles Leclerc", "Lewis Hamilton",
        "Lando Norris", "Oscar Piastri", "Alex Albon", "Carlos Sainz", "Liam Lawson", "Arvid Lindblad",
        "Fernando Alonso", "Lance Stroll", "Esteban Ocon", "Oliver Bearman", "Nico Hülkenberg",
        "Gabriel Bortoleto", "Pierre Gasly", "Franco Colapinto", "Sergio Pérez", "Valtteri Bottas",
    ]
    ledger = UsedSelection(driver_cycles=[drivers], team_cycles=[[]])

    picks = auto_selection.pick_auto_selection(ledger, 2026)

    # Solo queda Verstappen; al usarlo el ciclo se agota y el reserva sale del nuevo
    assert picks["main_driver"] == "Max Verstappen"
    assert picks["reserve_driver"] == "Isack Hadjar"
    # La copia no modifica el libro
    assert ledger.driver_cycles == [drivers]
