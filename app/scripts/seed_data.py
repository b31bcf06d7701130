from datetime import datetime
from app.db.session import SessionLocal, engine, Base
from app.db.models import _all
from app.db.models.card import Card, CardTarget, CardTier, CardType
from app.db.models.race_calendar import RaceCalendar

# (nombre, tipo, tier, slots, efecto, valor, objetivo, descripción)
CARD_CATALOG = [
    # --- Cartas de piloto ---
    ("2× Points", CardType.DRIVER, CardTier.GOLD, 3, "multiply", 2, None,
     "Duplica los puntos de carrera del piloto principal."),
    ("Mirror", CardType.DRIVER, CardTier.GOLD, 3, "mirror", None, CardTarget.PLAYER,
     "Copia la puntuación completa del fin de semana de otro jugador."),
    ("Switcheroo", CardType.DRIVER, CardTier.GOLD, 3, "switcheroo", None, CardTarget.DRIVER,
     "El piloto principal puntúa como el piloto que elijas."),
    ("Teamwork", CardType.DRIVER, CardTier.GOLD, 3, "teamwork2", None, None,
     "Puntos del piloto principal + los de su compañero."),
    ("Team Orders", CardType.DRIVER, CardTier.SILVER, 2, "teamwork", None, None,
     "Puntúa lo del compañero en lugar del piloto principal."),
    ("The lift", CardType.DRIVER, CardTier.SILVER, 2, "position_adjust", 1, None,
     "El piloto principal se clasifica una posición más arriba."),
    ("Mystery Card", CardType.DRIVER, CardTier.SILVER, 2, "mystery", None, None,
     "Se convierte en una carta de piloto aleatoria al activarla."),
    ("Top 5 Boost", CardType.DRIVER, CardTier.SILVER, 2, "conditional_bonus", {"condition": "top5", "bonus": 7}, None,
     "Si el piloto principal acaba Top 5 -> +7 puntos."),
    ("Top 10 Boost", CardType.DRIVER, CardTier.BRONZE, 1, "conditional_bonus", {"condition": "top10", "bonus": 3}, None,
     "Si el piloto principal acaba Top 10 -> +3 puntos."),
    ("+3 Points", CardType.DRIVER, CardTier.BRONZE, 1, "flat_bonus", 3, None,
     "+3 puntos fijos."),
    ("Competitiveness", CardType.DRIVER, CardTier.BRONZE, 1, "conditional_bonus", {"condition": "ahead_of_teammate", "bonus": 2}, None,
     "Si el piloto principal acaba por delante de su compañero -> +2 puntos."),
    ("Bottom 5", CardType.DRIVER, CardTier.BRONZE, 1, "conditional_bonus", {"condition": "bottom5", "bonus": 2}, None,
     "Si el piloto principal acaba en los 5 últimos -> +2 puntos."),
    # --- Cartas de equipo ---
    ("Espionage", CardType.TEAM, CardTier.GOLD, 4, "espionage", None, CardTarget.TEAM,
     "Copia los puntos totales de otro equipo."),
    ("Podium", CardType.TEAM, CardTier.GOLD, 4, "podium", {"points_per_podium": 8, "max_points": 16}, None,
     "+8 puntos por cada coche en el podio (máx. +16)."),
    ("Top 5", CardType.TEAM, CardTier.GOLD, 4, "conditional_bonus", {"condition": "both_top5", "bonus": 10}, None,
     "Si los dos coches acaban Top 5 -> +10 puntos."),
    ("Undercut", CardType.TEAM, CardTier.SILVER, 2, "undercut", -1, None,
     "El segundo coche se reclasifica justo detrás del compañero mejor colocado."),
    ("Top 10", CardType.TEAM, CardTier.SILVER, 2, "conditional_bonus", {"condition": "both_top10", "bonus": 5}, None,
     "Si los dos coches acaban Top 10 -> +5 puntos."),
    ("Mystery Card", CardType.TEAM, CardTier.SILVER, 2, "random", None, None,
     "Se convierte en una carta de equipo aleatoria al activarla."),
    ("Sponsors", CardType.TEAM, CardTier.BRONZE, 1, "conditional_bonus", {"condition": "sponsors", "bonus": {"zero": 5, "one": 1}}, None,
     "Si el equipo suma 0 -> +5; si suma 1 -> +1."),
    ("Bottom 5", CardType.TEAM, CardTier.BRONZE, 1, "conditional_bonus", {"condition": "both_bottom5", "bonus": 3}, None,
     "Si los dos coches acaban en los 5 últimos -> +3 puntos."),
    ("Last Place Bonus", CardType.TEAM, CardTier.BRONZE, 1, "conditional_bonus", {"condition": "one_last_place", "bonus": 3}, None,
     "Si un coche clasificado acaba último -> +3 puntos."),
]

# Primeras rondas 2026 (UTC). El resto lo carga el scraper del calendario.
CALENDAR_2026 = [
    dict(round=1, race_name="Australian Grand Prix", circuit="Albert Park Circuit", country="Australia",
         qualifying_start=datetime(2026, 3, 7, 6, 0), race_start=datetime(2026, 3, 8, 5, 0)),
    dict(round=2, race_name="Chinese Grand Prix", circuit="Shanghai International Circuit", country="China",
         qualifying_start=datetime(2026, 3, 14, 7, 0), race_start=datetime(2026, 3, 15, 7, 0),
         is_sprint_weekend=True, sprint_qualifying_start=datetime(2026, 3, 13, 7, 30),
         sprint_start=datetime(2026, 3, 14, 3, 0)),
    dict(round=3, race_name="Japanese Grand Prix", circuit="Suzuka International Racing Course", country="Japan",
         qualifying_start=datetime(2026, 3, 28, 6, 0), race_start=datetime(2026, 3, 29, 5, 0)),
    dict(round=4, race_name="Bahrain Grand Prix", circuit="Bahrain International Circuit", country="Bahrain",
         qualifying_start=datetime(2026, 4, 11, 17, 0), race_start=datetime(2026, 4, 12, 16, 0)),
    dict(round=5, race_name="Saudi Arabian Grand Prix", circuit="Jeddah Corniche Circuit", country="Saudi Arabia",
         qualifying_start=datetime(2026, 4, 18, 18, 0), race_start=datetime(2026, 4, 19, 18, 0)),
]


def seed_cards(db):
    """Crea o actualiza el catálogo (idempotente, clave = nombre + tipo)."""
    created = 0
    for name, card_type, tier, slots, effect, value, target, description in CARD_CATALOG:
        card = db.query(Card).filter(Card.name == name, Card.type == card_type).first()
        if card is None:
            card = Card(name=name, type=card_type)
            db.add(card)
            created += 1
        card.tier = tier
        card.slot_cost = slots
        card.effect_type = effect
        card.effect_value = value
        card.requires_target = target
        card.description = description
        card.is_active = True
    db.commit()
    return created


def seed_calendar(db, season=2026, races=CALENDAR_2026):
    created = 0
    for data in races:
        race = (
            db.query(RaceCalendar)
            .filter(RaceCalendar.season == season, RaceCalendar.round == data["round"])
            .first()
        )
        if race is None:
            race = RaceCalendar(season=season, round=data["round"])
            db.add(race)
            created += 1
        for key, value in data.items():
            setattr(race, key, value)
    db.commit()
    return created


def main():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        print("🃏 Sembrando catálogo de cartas...")
        print(f"✅ {seed_cards(db)} cartas nuevas")
        print("🗓️ Sembrando calendario 2026...")
        print(f"✅ {seed_calendar(db)} carreras nuevas")
    finally:
        db.close()


if __name__ == "__main__":
    main()
