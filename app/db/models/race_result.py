# app/db/models/race_result.py
from sqlalchemy import Integer, String, Boolean, JSON, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from app.db.session import Base

class RaceResult(Base):
    """
    Resultado oficial de una ronda, tal y como lo deja el scraper.

    results / sprint_results: [{"driver": "Max Verstappen", "position": 1, "points": 25, "did_not_start": false}, ...]
    team_results: [{"team": "Red Bull Racing", "race_points": 33, "sprint_points": 0}, ...]
    """
    __tablename__ = "race_results"
    __table_args__ = (
        UniqueConstraint("season", "round", name="uq_result_season_round"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    season: Mapped[int] = mapped_column(Integer, nullable=False)
    round: Mapped[int] = mapped_column(Integer, nullable=False)
    is_sprint_weekend: Mapped[bool] = mapped_column(Boolean, default=False)
    status: Mapped[str] = mapped_column(String, default="scheduled")  # scheduled | completed

    results: Mapped[list] = mapped_column(JSON, default=list)
    sprint_results: Mapped[list] = mapped_column(JSON, default=list)
    team_results: Mapped[list] = mapped_column(JSON, default=list)
