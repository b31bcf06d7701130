# app/db/models/race_selection.py
import enum
from datetime import datetime
from sqlalchemy import Integer, String, Boolean, ForeignKey, UniqueConstraint, DateTime, JSON, CheckConstraint
from sqlalchemy import Enum as SqEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func
from typing import TYPE_CHECKING
from app.db.session import Base

if TYPE_CHECKING:
    from app.db.models.user import User
    from app.db.models.league import League
    from app.db.models.race_calendar import RaceCalendar


class SelectionStatus(str, enum.Enum):
    EMPTY = "empty"
    USER_SUBMITTED = "user-submitted"
    ADMIN_ASSIGNED = "admin-assigned"
    AUTO_ASSIGNED = "auto-assigned"


class RaceSelection(Base):
    __tablename__ = "race_selections"
    __table_args__ = (
        # Una única selección viva por usuario, liga y ronda
        UniqueConstraint("user_id", "league_id", "round", name="uq_user_league_round"),
        CheckConstraint("main_driver IS NULL OR main_driver != reserve_driver", name="ck_main_not_reserve"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    league_id: Mapped[int] = mapped_column(Integer, ForeignKey("leagues.id"), nullable=False)
    # Puntero "cacheado" al calendario; se re-apunta al guardar (ver services/calendar.py)
    race_id: Mapped[int] = mapped_column(Integer, ForeignKey("race_calendar.id"), nullable=False)
    round: Mapped[int] = mapped_column(Integer, nullable=False)

    # Nombres canónicos (ver core/f1_data.py)
    main_driver: Mapped[str | None] = mapped_column(String, nullable=True)
    reserve_driver: Mapped[str | None] = mapped_column(String, nullable=True)
    team: Mapped[str | None] = mapped_column(String, nullable=True)

    status: Mapped[SelectionStatus] = mapped_column(SqEnum(SelectionStatus), default=SelectionStatus.EMPTY)
    points: Mapped[int] = mapped_column(Integer, default=0)
    point_breakdown: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    is_admin_assigned: Mapped[bool] = mapped_column(Boolean, default=False)
    # Solo True cuando la asignó el sistema por no llegar al deadline
    is_auto_assigned: Mapped[bool] = mapped_column(Boolean, default=False)
    assigned_by_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)
    assigned_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    notes: Mapped[str] = mapped_column(String, default="")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), onupdate=func.now(), server_default=func.now())

    # Relaciones
    user: Mapped["User"] = relationship("User", back_populates="selections", foreign_keys=[user_id])
    assigned_by: Mapped["User"] = relationship("User", foreign_keys=[assigned_by_id])
    league: Mapped["League"] = relationship("League")
    race: Mapped["RaceCalendar"] = relationship("RaceCalendar")

    def picks(self) -> dict:
        return {
            "main_driver": self.main_driver,
            "reserve_driver": self.reserve_driver,
            "team": self.team,
        }

    def is_complete(self) -> bool:
        return bool(self.main_driver and self.reserve_driver and self.team)
