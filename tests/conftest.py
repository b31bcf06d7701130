import os

# Base de datos en memoria antes de importar nada de app/
os.environ["DATABASE_URL"] = "sqlite://"

import random
from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.session import Base
from app.db.models import _all  # noqa: F401
from app.db.models.card import Card, CardType
from app.db.models.league import League, LeagueMember
from app.db.models.race_calendar import RaceCalendar
from app.db.models.user import User
from app.scripts.seed_data import seed_cards

# Hora de referencia de los tests de servicios (antes de la ronda 1)
NOW = datetime(2026, 3, 1, 12, 0)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    def _make(username, role="user"):
        user = User(email=f"{username}@example.com", username=username, role=role)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture
def make_league(db):
    def _make(owner, members=(), admins=(), season=2026, code=None):
        league = League(
            name=f"Liga {owner.username}",
            code=code or f"L-{owner.id}-{season}-{random.randint(0, 10**6)}",
            owner_id=owner.id,
            season=season,
        )
        db.add(league)
        db.flush()
        for user in [owner, *members]:
            db.add(LeagueMember(league_id=league.id, user_id=user.id, is_admin=user in admins))
        db.commit()
        db.refresh(league)
        return league
    return _make


@pytest.fixture
def make_race(db):
    def _make(season, round, qualifying_start, race_start=None, **extra):
        race = RaceCalendar(
            season=season,
            round=round,
            race_name=f"GP {season}-{round}",
            qualifying_start=qualifying_start,
            race_start=race_start or qualifying_start + timedelta(hours=23),
            is_sprint_weekend=extra.pop("is_sprint_weekend", False),
            **extra,
        )
        db.add(race)
        db.commit()
        db.refresh(race)
        return race
    return _make


@pytest.fixture
def calendar_2026(make_race):
    """Cinco rondas semanales; la 4 es sprint."""
    races = {}
    start = datetime(2026, 3, 7, 6, 0)
    for round in range(1, 6):
        quali = start + timedelta(weeks=round - 1)
        if round == 4:
            races[round] = make_race(
                2026, round, quali,
                is_sprint_weekend=True,
                sprint_qualifying_start=quali - timedelta(days=1),
                sprint_start=quali - timedelta(hours=3),
            )
        else:
            races[round] = make_race(2026, round, quali)
    return races


@pytest.fixture
def owner(make_user):
    return make_user("alonso_fan")


@pytest.fixture
def player(make_user):
    return make_user("tifosi")


@pytest.fixture
def league(make_league, owner, player):
    return make_league(owner, members=[player])


@pytest.fixture
def cards(db):
    seed_cards(db)
    by_key = {}
    for card in db.query(Card).all():
        key = card.name if card.type == CardType.DRIVER else f"team:{card.name}"
        by_key[key] = card
    return by_key


class FakeScoring:
    def __init__(self, points=42, fail=False):
        self.points = points
        self.fail = fail
        self.calls = []

    def calculate_race_points(self, selection, race_result, card_activation=None):
        self.calls.append((selection.id, race_result.round, card_activation))
        if self.fail:
            raise RuntimeError("scoring caído")
        return {"total_points": self.points, "breakdown": {"fake": True}}


class FakeLeaderboard:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def update_standings(self, db, league_id, race_id=None):
        self.calls.append((league_id, race_id))
        if self.fail:
            raise RuntimeError("leaderboard caído")
        return []


@pytest.fixture
def fake_scoring():
    return FakeScoring()


@pytest.fixture
def fake_leaderboard():
    return FakeLeaderboard()
