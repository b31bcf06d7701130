"""
Control de reutilización de pilotos y equipos ("agotar antes de repetir").

Un piloto/equipo usado no vuelve a estar disponible hasta que se han usado
todos los de la parrilla de esa temporada. Cada (usuario, liga) tiene una
pila de ciclos por tipo; el último ciclo es el actual:

    CicloActual(set) -> Agotado (contiene toda la parrilla) -> CicloNuevo(vacío)

El paso a un ciclo nuevo ocurre al añadir un nombre a un ciclo agotado.
El historial de selecciones es la verdad; ``used_selections`` es una caché.
"""
import logging

from sqlalchemy.orm import Session

from app.core import f1_data
from app.db.models.race_selection import RaceSelection
from app.db.models.used_selection import UsedSelection

logger = logging.getLogger(__name__)

DRIVER = "driver"
TEAM = "team"

_COLUMNS = {DRIVER: "driver_cycles", TEAM: "team_cycles"}


def roster_for(kind: str, season: int) -> list[str]:
    if kind == DRIVER:
        return f1_data.roster_drivers(season)
    return f1_data.roster_teams(season)


def cycle_exhausted(current, roster) -> bool:
    """Un ciclo está agotado cuando contiene TODOS los nombres de la parrilla."""
    return bool(roster) and set(roster).issubset(current)


class CycleStack:
    def __init__(self, cycles: list | None = None):
        self.cycles: list[list[str]] = [list(c) for c in (cycles or [])] or [[]]

    @classmethod
    def from_json(cls, data) -> "CycleStack":
        return cls(data)

    def to_json(self) -> list[list[str]]:
        return [list(c) for c in self.cycles]

    def copy(self) -> "CycleStack":
        return CycleStack(self.to_json())

    @property
    def current(self) -> list[str]:
        return self.cycles[-1]

    def is_exhausted(self, roster) -> bool:
        return cycle_exhausted(self.current, roster)

    def roll_over(self):
        self.cycles.append([])

    def add(self, name: str, roster) -> bool:
        """
        Devuelve True si el nombre entra en el ciclo. Con el ciclo agotado se
        abre uno nuevo antes de mirar si ya estaba.
        """
        if self.is_exhausted(roster):
            self.roll_over()
        if name in self.current:
            return False
        self.current.append(name)
        return True

    def add_many(self, names, roster) -> list[str]:
        """Añade varios nombres de una misma ronda; los no usados van primero."""
        added = []
        for name in sorted(names, key=lambda n: n in self.current):
            if self.add(name, roster):
                added.append(name)
        return added

    def remove(self, name: str) -> bool:
        if name in self.current:
            self.current.remove(name)
            return True
        return False

    def blocked(self, names, roster) -> list[str]:
        """
        Nombres de ``names`` que no se pueden usar ahora. Los que no están en el
        ciclo se aplican primero: si completan la parrilla, el resto ya cae en
        un ciclo nuevo.
        """
        trial = self.copy()
        conflicts = []
        for name in sorted(names, key=lambda n: n in trial.current):
            if name in trial.current and not trial.is_exhausted(roster):
                conflicts.append(name)
                continue
            trial.add(name, roster)
        return conflicts


# --- Libro por (usuario, liga) ---

def get_or_create_ledger(db: Session, user_id: int, league_id: int) -> UsedSelection:
    ledger = (
        db.query(UsedSelection)
        .filter(UsedSelection.user_id == user_id, UsedSelection.league_id == league_id)
        .first()
    )
    if ledger is None:
        ledger = UsedSelection(user_id=user_id, league_id=league_id, driver_cycles=[[]], team_cycles=[[]])
        db.add(ledger)
        db.flush()
    return ledger


def load_stack(ledger: UsedSelection, kind: str) -> CycleStack:
    return CycleStack.from_json(getattr(ledger, _COLUMNS[kind]))


def store_stack(ledger: UsedSelection, kind: str, stack: CycleStack):
    # Reasignar la lista entera: la columna JSON no detecta mutaciones in-place
    setattr(ledger, _COLUMNS[kind], stack.to_json())


def get_used(ledger: UsedSelection, kind: str) -> list[str]:
    return list(load_stack(ledger, kind).current)


def add_used(ledger: UsedSelection, kind: str, names: list[str], season: int) -> list[str]:
    stack = load_stack(ledger, kind)
    added = stack.add_many(names, roster_for(kind, season))
    if added:
        store_stack(ledger, kind, stack)
    return added


def remove_used(ledger: UsedSelection, kind: str, name: str) -> bool:
    stack = load_stack(ledger, kind)
    removed = stack.remove(name)
    if removed:
        store_stack(ledger, kind, stack)
    return removed


def _recorded(ledger: UsedSelection, kind: str, name: str) -> bool:
    return any(name in cycle for cycle in load_stack(ledger, kind).cycles)


def swap_used(ledger: UsedSelection, season: int, previous: dict | None, new: dict):
    """
    Sustituye los valores anteriores de una ronda por los nuevos.
    Solo se liberan los anteriores que ya no aparecen en la nueva selección;
    repetir la misma selección no cambia nada. Los que se mantienen ya están
    anotados y no se vuelven a añadir (abrirían un ciclo nuevo si esta ronda
    fue la que agotó la parrilla).
    """
    previous = previous or {}
    new_drivers = [d for d in (new.get("main_driver"), new.get("reserve_driver")) if d]
    old_drivers = [d for d in (previous.get("main_driver"), previous.get("reserve_driver")) if d]

    for driver in old_drivers:
        if driver not in new_drivers:
            remove_used(ledger, DRIVER, driver)
    old_team, new_team = previous.get("team"), new.get("team")
    if old_team and old_team != new_team:
        remove_used(ledger, TEAM, old_team)

    fresh = [d for d in new_drivers if d not in old_drivers or not _recorded(ledger, DRIVER, d)]
    add_used(ledger, DRIVER, fresh, season)
    if new_team and (new_team != old_team or not _recorded(ledger, TEAM, new_team)):
        add_used(ledger, TEAM, [new_team], season)


def available(kind: str, used, season: int) -> list[str]:
    """Parrilla menos el ciclo actual; con el ciclo agotado vuelve a estar toda."""
    roster = roster_for(kind, season)
    if cycle_exhausted(used, roster):
        return roster
    return [name for name in roster if name not in used]


# --- Vista derivada desde el historial ---

def replay_history(selections, season: int) -> tuple[CycleStack, CycleStack]:
    """Reproduce las selecciones (en orden de ronda) sobre pilas nuevas."""
    drivers, teams = CycleStack(), CycleStack()
    driver_roster = roster_for(DRIVER, season)
    team_roster = roster_for(TEAM, season)

    for sel in sorted(selections, key=lambda s: s.round):
        names = [f1_data.canonical_or_none(season, raw, DRIVER) for raw in (sel.main_driver, sel.reserve_driver)]
        drivers.add_many([n for n in names if n], driver_roster)
        team = f1_data.canonical_or_none(season, sel.team, TEAM)
        if team:
            teams.add(team, team_roster)

    return drivers, teams


def _history(db: Session, user_id: int, league_id: int, before_round: int | None = None):
    query = db.query(RaceSelection).filter(
        RaceSelection.user_id == user_id,
        RaceSelection.league_id == league_id,
    )
    if before_round is not None:
        query = query.filter(RaceSelection.round < before_round)
    return query.order_by(RaceSelection.round).all()


def _backfill(ledger: UsedSelection, kind: str, truth: CycleStack) -> list[str]:
    stored = load_stack(ledger, kind)

    # Libro por detrás del historial (faltan ciclos enteros): se reemplaza
    if len(stored.cycles) < len(truth.cycles):
        store_stack(ledger, kind, truth)
        return list(truth.current)

    if len(stored.cycles) > len(truth.cycles):
        return []

    missing = [name for name in truth.current if name not in stored.current]
    if missing:
        stored.current.extend(missing)
        store_stack(ledger, kind, stored)
    return missing


def sync_ledger(db: Session, user_id: int, league) -> UsedSelection:
    """
    Completa el libro con lo que falte respecto al historial completo.
    No hace commit; lo hace quien llama junto con el resto de cambios.
    """
    full_drivers, full_teams = replay_history(_history(db, user_id, league.id), league.season)
    ledger = get_or_create_ledger(db, user_id, league.id)
    added_drivers = _backfill(ledger, DRIVER, full_drivers)
    added_teams = _backfill(ledger, TEAM, full_teams)

    if added_drivers or added_teams:
        logger.info(
            "Libro de reutilización completado desde el historial: user=%s liga=%s pilotos=%s equipos=%s",
            user_id, league.id, added_drivers, added_teams,
        )
    return ledger


def compute_used_for_round(db: Session, user_id: int, league, round: int) -> dict:
    """
    Pilotos/equipos del ciclo actual según las selecciones de rondas < ``round``.
    Si el libro guardado no tiene algo que el historial sí tiene, se completa.
    """
    before = _history(db, user_id, league.id, before_round=round)
    drivers, teams = replay_history(before, league.season)

    # El relleno se hace contra el historial completo, no contra el recorte por ronda
    sync_ledger(db, user_id, league)
    db.commit()

    return {
        "round": round,
        "used_drivers": list(drivers.current),
        "used_teams": list(teams.current),
        "available_drivers": available(DRIVER, drivers.current, league.season),
        "available_teams": available(TEAM, teams.current, league.season),
        "driver_cycle": len(drivers.cycles),
        "team_cycle": len(teams.cycles),
    }


def ledger_view(db: Session, user_id: int, league) -> dict:
    ledger = sync_ledger(db, user_id, league)
    db.commit()
    drivers = get_used(ledger, DRIVER)
    teams = get_used(ledger, TEAM)
    return {
        "used_drivers": drivers,
        "used_teams": teams,
        "available_drivers": available(DRIVER, drivers, league.season),
        "available_teams": available(TEAM, teams, league.season),
        "driver_cycle": len(ledger.driver_cycles or [[]]),
        "team_cycle": len(ledger.team_cycles or [[]]),
    }


def rebuild_ledger(db: Session, user_id: int, league) -> UsedSelection:
    """Recrea el libro entero a partir de todas las selecciones guardadas."""
    drivers, teams = replay_history(_history(db, user_id, league.id), league.season)
    ledger = get_or_create_ledger(db, user_id, league.id)
    store_stack(ledger, DRIVER, drivers)
    store_stack(ledger, TEAM, teams)
    db.commit()
    db.refresh(ledger)
    logger.info("Libro de reutilización reconstruido: user=%s liga=%s", user_id, league.id)
    return ledger
