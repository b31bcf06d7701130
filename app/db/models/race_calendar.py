# app/db/models/race_calendar.py
from datetime import datetime
from sqlalchemy import Integer, String, Boolean, DateTime, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from app.db.session import Base

class RaceCalendar(Base):
    """
    Calendario oficial. La identidad real de una carrera es (season, round):
    el calendario se puede regenerar y el id cambia, así que nadie debe fiarse
    de un race_id guardado sin comprobarlo.
    """
    __tablename__ = "race_calendar"
    __table_args__ = (
        # Misma ronda puede existir en temporadas distintas
        UniqueConstraint("season", "round", name="uq_calendar_season_round"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    season: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    round: Mapped[int] = mapped_column(Integer, nullable=False)
    race_name: Mapped[str] = mapped_column(String, nullable=False)
    circuit: Mapped[str | None] = mapped_column(String, nullable=True)
    country: Mapped[str | None] = mapped_column(String, nullable=True)

    qualifying_start: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    race_start: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # Fin de semana sprint
    is_sprint_weekend: Mapped[bool] = mapped_column(Boolean, default=False)
    sprint_qualifying_start: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    sprint_start: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
