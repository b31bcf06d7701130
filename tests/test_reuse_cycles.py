from app.core import f1_data
from app.db.models.race_selection import RaceSelection, SelectionStatus
from app.db.models.used_selection import UsedSelection
from app.services import reuse_cycles
from app.services.reuse_cycles import CycleStack, cycle_exhausted

ROSTER = ["A", "B", "C"]


def test_add_is_noop_when_already_in_cycle():
    stack = CycleStack()
    assert stack.add("A", ROSTER)
    assert not stack.add("A", ROSTER)
    assert stack.to_json() == [["A"]]


def test_cycle_exhausted_only_with_full_roster():
    assert not cycle_exhausted(["A", "B"], ROSTER)
    assert cycle_exhausted(["C", "A", "B"], ROSTER)
    assert not cycle_exhausted([], [])


def test_adding_to_exhausted_cycle_rolls_over():
    stack = CycleStack([["A", "B", "C"]])
    assert stack.is_exhausted(ROSTER)
    # Repetir un nombre del ciclo agotado abre el ciclo siguiente
    assert stack.add("A", ROSTER)
    assert stack.to_json() == [["A", "B", "C"], ["A"]]
    assert not stack.add("A", ROSTER)
    assert stack.add("B", ROSTER)
    assert stack.to_json() == [["A", "B", "C"], ["A", "B"]]


def test_add_many_applies_unused_names_first():
    stack = CycleStack([["A", "B"]])
    assert stack.add_many(["A", "C"], ROSTER) == ["C", "A"]
    assert stack.to_json() == [["A", "B", "C"], ["A"]]


def test_repeat_is_blocked_again_in_second_cycle():
    stack = CycleStack([["A", "B", "C"]])
    assert stack.blocked(["A"], ROSTER) == []
    stack.add("A", ROSTER)
    assert stack.blocked(["A"], ROSTER) == ["A"]
    assert stack.blocked(["B", "C"], ROSTER) == []


def test_available_shrinks_again_after_rollover():
    teams = f1_data.roster_teams(2026)
    stack = CycleStack()
    for team in teams:
        stack.add(team, teams)
    assert reuse_cycles.available("team", stack.current, 2026) == teams

    stack.add("Ferrari", teams)
    remaining = reuse_cycles.available("team", stack.current, 2026)
    assert "Ferrari" not in remaining
    assert len(remaining) == len(teams) - 1


def test_roster_growth_keeps_cycle_open():
    stack = CycleStack([["A", "B"]])
    stack.add("C", ROSTER)
    assert stack.current == ["A", "B", "C"]
    stack.add("D", ROSTER + ["D"])  # parrilla ampliada: todavía no agotado
    assert len(stack.cycles) == 1


def test_remove_only_touches_current_cycle():
    stack = CycleStack([["A", "B", "C"], ["A"]])
    assert stack.remove("A")
    assert not stack.remove("B")
    assert stack.to_json() == [["A", "B", "C"], []]


def test_blocked_reports_names_in_current_cycle():
    stack = CycleStack([["A"]])
    assert stack.blocked(["A", "B"], ROSTER) == ["A"]
    assert stack.blocked(["B", "C"], ROSTER) == []
    # blocked no modifica la pila original
    assert stack.to_json() == [["A"]]


def test_blocked_allows_repeat_once_pick_completes_roster():
    stack = CycleStack([["A", "B"]])
    # C completa la parrilla; A ya cae en el ciclo siguiente
    assert stack.blocked(["A", "C"], ROSTER) == []
    assert stack.blocked(["A", "B"], ROSTER) == ["A", "B"]


def test_available_returns_whole_roster_when_exhausted():
    assert reuse_cycles.available("team", [], 2026) == f1_data.roster_teams(2026)
    used = ["Ferrari", "McLaren"]
    remaining = reuse_cycles.available("team", used, 2026)
    assert "Ferrari" not in remaining and len(remaining) == 9
    everything = f1_data.roster_teams(2026)
    assert reuse_cycles.available("team", everything, 2026) == everything


def test_swap_used_frees_only_changed_values():
    ledger = UsedSelection(driver_cycles=[[]], team_cycles=[[]])
    first = {"main_driver": "Max Verstappen", "reserve_driver": "Isack Hadjar", "team": "Red Bull Racing"}
    reuse_cycles.swap_used(ledger, 2026, None, first)
    assert reuse_cycles.get_used(ledger, "driver") == ["Max Verstappen", "Isack Hadjar"]

    second = {"main_driver": "Isack Hadjar", "reserve_driver": "Lando Norris", "team": "McLaren"}
    reuse_cycles.swap_used(ledger, 2026, first, second)
    assert reuse_cycles.get_used(ledger, "driver") == ["Isack Hadjar", "Lando Norris"]
    assert reuse_cycles.get_used(ledger, "team") == ["McLaren"]

    # Misma selección otra vez: nada cambia
    reuse_cycles.swap_used(ledger, 2026, second, second)
    assert reuse_cycles.get_used(ledger, "driver") == ["Isack Hadjar", "Lando Norris"]


def _persist(db, user, league, race, main, reserve, team):
    sel = RaceSelection(
        user_id=user.id, league_id=league.id, race_id=race.id, round=race.round,
        main_driver=main, reserve_driver=reserve, team=team,
        status=SelectionStatus.USER_SUBMITTED,
    )
    db.add(sel)
    db.commit()
    return sel


def test_compute_used_for_round_replays_history_and_backfills(db, league, player, calendar_2026):
    _persist(db, player, league, calendar_2026[1], "Max Verstappen", "Isack Hadjar", "Red Bull Racing")
    _persist(db, player, league, calendar_2026[2], "leclerc", "Hamilton", "Ferrari")
    _persist(db, player, league, calendar_2026[3], "Norris", "Piastri", "McLaren")

    view = reuse_cycles.compute_used_for_round(db, player.id, league, 3)
    assert set(view["used_drivers"]) == {"Max Verstappen", "Isack Hadjar", "Charles Leclerc", "Lewis Hamilton"}
    assert set(view["used_teams"]) == {"Red Bull Racing", "Ferrari"}
    assert "Charles Leclerc" not in view["available_drivers"]
    assert len(view["available_drivers"]) == 18

    # El libro estaba vacío: se completa con TODO el historial
    ledger = reuse_cycles.get_or_create_ledger(db, player.id, league.id)
    assert "Lando Norris" in reuse_cycles.get_used(ledger, "driver")
    assert set(reuse_cycles.get_used(ledger, "team")) == {"Red Bull Racing", "Ferrari", "McLaren"}


def test_backfill_never_removes_ledger_entries(db, league, player, calendar_2026):
    _persist(db, player, league, calendar_2026[1], "Max Verstappen", "Isack Hadjar", "Red Bull Racing")
    ledger = reuse_cycles.get_or_create_ledger(db, player.id, league.id)
    ledger.driver_cycles = [["Fernando Alonso"]]
    db.commit()

    reuse_cycles.compute_used_for_round(db, player.id, league, 2)
    used = reuse_cycles.get_used(ledger, "driver")
    assert used == ["Fernando Alonso", "Max Verstappen", "Isack Hadjar"]


def test_rebuild_ledger_from_history(db, league, player, calendar_2026):
    _persist(db, player, league, calendar_2026[1], "Max Verstappen", "Isack Hadjar", "Red Bull Racing")
    _persist(db, player, league, calendar_2026[2], "Charles Leclerc", "Lewis Hamilton", "Ferrari")
    ledger = reuse_cycles.get_or_create_ledger(db, player.id, league.id)
    ledger.driver_cycles = [["Fernando Alonso"]]
    ledger.team_cycles = [["Williams"]]
    db.commit()

    rebuilt = reuse_cycles.rebuild_ledger(db, player.id, league)
    assert rebuilt.driver_cycles == [["Max Verstappen", "Isack Hadjar", "Charles Leclerc", "Lewis Hamilton"]]
    assert rebuilt.team_cycles == [["Red Bull Racing", "Ferrari"]]


def test_replay_rolls_over_after_full_team_roster():
    season = 2026
    teams = f1_data.roster_teams(season)
    drivers = f1_data.roster_drivers(season)
    history = []
    for i, team in enumerate(teams + ["Ferrari"]):
        history.append(RaceSelection(
            round=i + 1,
            main_driver=drivers[(2 * i) % len(drivers)],
            reserve_driver=drivers[(2 * i + 1) % len(drivers)],
            team=team,
        ))

    driver_stack, team_stack = reuse_cycles.replay_history(history, season)
    assert len(team_stack.cycles) == 2
    assert team_stack.current == ["Ferrari"]
    # 12 rondas x 2 pilotos = 24 > 22: el ciclo de pilotos también ha rodado
    assert len(driver_stack.cycles) == 2
    assert len(driver_stack.current) == 2


def test_swap_used_same_picks_after_exhausting_keeps_cycle():
    teams = f1_data.roster_teams(2026)
    ledger = UsedSelection(driver_cycles=[[]], team_cycles=[teams[:-1]])
    picks = {"main_driver": "Max Verstappen", "reserve_driver": "Isack Hadjar", "team": teams[-1]}

    reuse_cycles.swap_used(ledger, 2026, None, picks)
    assert ledger.team_cycles == [teams]

    # Guardar otra vez lo mismo no abre un ciclo nuevo
    reuse_cycles.swap_used(ledger, 2026, picks, picks)
    assert ledger.team_cycles == [teams]
