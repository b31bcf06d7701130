"""
Parrillas oficiales por temporada y normalización de nombres.

Todo nombre de piloto o equipo que entra al motor de reglas pasa por
``canonical_driver`` / ``canonical_team``: la versión canónica es la que se
guarda en selecciones y libros de reutilización, así "M. Verstappen",
"verstappen" y "Max Verstappen" cuentan como el mismo piloto.
"""
import unicodedata
from functools import lru_cache

from app.core.errors import InvalidSelection

# (nombre canónico, equipo)
DRIVERS_2025 = [
    ("Max Verstappen", "Red Bull Racing"),
    ("Yuki Tsunoda", "Red Bull Racing"),
    ("George Russell", "Mercedes"),
    ("Kimi Antonelli", "Mercedes"),
    ("Charles Leclerc", "Ferrari"),
    ("Lewis Hamilton", "Ferrari"),
    ("Oscar Piastri", "McLaren"),
    ("Lando Norris", "McLaren"),
    ("Lance Stroll", "Aston Martin"),
    ("Fernando Alonso", "Aston Martin"),
    ("Esteban Ocon", "Haas F1 Team"),
    ("Oliver Bearman", "Haas F1 Team"),
    ("Alexander Albon", "Williams"),
    ("Carlos Sainz", "Williams"),
    ("Liam Lawson", "RB"),
    ("Isack Hadjar", "RB"),
    ("Pierre Gasly", "Alpine"),
    ("Franco Colapinto", "Alpine"),
    ("Nico Hulkenberg", "Stake F1 Team Kick Sauber"),
    ("Gabriel Bortoleto", "Stake F1 Team Kick Sauber"),
]

DRIVERS_2026 = [
    ("Max Verstappen", "Red Bull Racing"),
    ("Isack Hadjar", "Red Bull Racing"),
    ("George Russell", "Mercedes"),
    ("Kimi Antonelli", "Mercedes"),
    ("Charles Leclerc", "Ferrari"),
    ("Lewis Hamilton", "Ferrari"),
    ("Lando Norris", "McLaren"),
    ("Oscar Piastri", "McLaren"),
    ("Alex Albon", "Williams"),
    ("Carlos Sainz", "Williams"),
    ("Liam Lawson", "RB"),
    ("Arvid Lindblad", "RB"),
    ("Fernando Alonso", "Aston Martin"),
    ("Lance Stroll", "Aston Martin"),
    ("Esteban Ocon", "Haas F1 Team"),
    ("Oliver Bearman", "Haas F1 Team"),
    ("Nico Hülkenberg", "Audi"),
    ("Gabriel Bortoleto", "Audi"),
    ("Pierre Gasly", "Alpine"),
    ("Franco Colapinto", "Alpine"),
    ("Sergio Pérez", "Cadillac"),
    ("Valtteri Bottas", "Cadillac"),
]

# Nombres alternativos que devuelven el scraper y el frontend
TEAM_ALIASES = {
    "Red Bull Racing": ["Red Bull", "Red Bull Racing Honda RBPT", "Oracle Red Bull Racing"],
    "Mercedes": ["Mercedes AMG", "Mercedes-AMG Petronas", "Mercedes AMG Petronas F1 Team"],
    "Ferrari": ["Scuderia Ferrari", "Scuderia Ferrari HP"],
    "McLaren": ["McLaren Mercedes", "McLaren F1 Team"],
    "Aston Martin": ["Aston Martin Aramco", "Aston Martin Aramco Mercedes", "Aston Martin Racing"],
    "Alpine": ["Alpine Renault", "BWT Alpine F1 Team", "Alpine F1 Team"],
    "Williams": ["Williams Mercedes", "Williams Racing", "Atlassian Williams Racing"],
    "RB": ["Racing Bulls", "Visa Cash App RB", "VCARB", "RB Honda RBPT", "Visa Cash App Racing Bulls"],
    "Haas F1 Team": ["Haas", "Haas Ferrari", "MoneyGram Haas F1 Team", "TGR Haas F1 Team"],
    "Stake F1 Team Kick Sauber": ["Kick Sauber", "Sauber", "Stake F1 Team", "Kick Sauber Ferrari"],
    "Audi": ["Audi F1 Team", "Audi Revolut F1 Team"],
    "Cadillac": ["Cadillac F1 Team", "Cadillac Formula 1 Team"],
}

# La parrilla 2026 es la base de cualquier temporada posterior hasta que se publique otra
LATEST_SEASON = 2026


def _drivers_for(season: int) -> list[tuple[str, str]]:
    return DRIVERS_2025 if season < LATEST_SEASON else DRIVERS_2026


def _key(raw: str) -> str:
    """Minúsculas, sin acentos y sin espacios sobrantes."""
    text = unicodedata.normalize("NFKD", raw)
    text = "".join(c for c in text if not unicodedata.combining(c))
    return " ".join(text.lower().split())


def _driver_variants(name: str) -> list[str]:
    first, _, last = name.partition(" ")
    return [
        name,
        last,
        f"{first[0]}. {last}",
        f"{first[0]} {last}",
        f"{first[0]}.{last}",
    ]


@lru_cache(maxsize=None)
def _driver_index(season: int) -> dict[str, str]:
    index: dict[str, str] = {}
    # Nombres de pila solo si no chocan con otro piloto de la temporada
    first_names: dict[str, list[str]] = {}

    for name, _team in _drivers_for(season):
        for variant in _driver_variants(name):
            index[_key(variant)] = name
        first_names.setdefault(_key(name.split(" ")[0]), []).append(name)

    for first, owners in first_names.items():
        if len(owners) == 1:
            index.setdefault(first, owners[0])

    # "Alex" / "Alexander" Albon según temporada
    if season < LATEST_SEASON:
        index.setdefault(_key("Alex Albon"), "Alexander Albon")
    else:
        index.setdefault(_key("Alexander Albon"), "Alex Albon")

    return index


@lru_cache(maxsize=None)
def _team_index(season: int) -> dict[str, str]:
    index: dict[str, str] = {}
    for team in roster_teams(season):
        index[_key(team)] = team
        for alias in TEAM_ALIASES.get(team, []):
            index[_key(alias)] = team
    return index


def roster_drivers(season: int) -> list[str]:
    return [name for name, _ in _drivers_for(season)]


def roster_teams(season: int) -> list[str]:
    teams: list[str] = []
    for _, team in _drivers_for(season):
        if team not in teams:
            teams.append(team)
    return teams


def driver_team(season: int, driver: str) -> str | None:
    canonical = canonical_driver(season, driver)
    return dict(_drivers_for(season)).get(canonical)


def is_valid_driver(season: int, raw: str | None) -> bool:
    return bool(raw) and _key(raw) in _driver_index(season)


def is_valid_team(season: int, raw: str | None) -> bool:
    return bool(raw) and _key(raw) in _team_index(season)


def canonical_driver(season: int, raw: str | None) -> str:
    """Nombre canónico del piloto en esa temporada o ``InvalidSelection``."""
    if not raw or not raw.strip():
        raise InvalidSelection("Falta el piloto")
    name = _driver_index(season).get(_key(raw))
    if name is None:
        raise InvalidSelection(
            f"Piloto desconocido para la temporada {season}: {raw}",
            {"field": "driver", "value": raw, "season": season},
        )
    return name


def canonical_team(season: int, raw: str | None) -> str:
    if not raw or not raw.strip():
        raise InvalidSelection("Falta el equipo")
    name = _team_index(season).get(_key(raw))
    if name is None:
        raise InvalidSelection(
            f"Equipo desconocido para la temporada {season}: {raw}",
            {"field": "team", "value": raw, "season": season},
        )
    return name


def canonical_or_none(season: int, raw: str | None, kind: str) -> str | None:
    """
    Versión tolerante para datos históricos: devuelve None en vez de lanzar.
    Se usa al reconstruir libros a partir de selecciones antiguas.
    """
    if not raw:
        return None
    index = _driver_index(season) if kind == "driver" else _team_index(season)
    return index.get(_key(raw))
