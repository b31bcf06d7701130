from sqlalchemy import String, Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func
from typing import List, TYPE_CHECKING
from app.db.session import Base
from datetime import datetime

if TYPE_CHECKING:
    from app.db.models.league import LeagueMember
    from app.db.models.race_selection import RaceSelection

class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String, unique=True, index=True, nullable=False)
    username: Mapped[str] = mapped_column(String, unique=True, index=True, nullable=False)
    role: Mapped[str] = mapped_column(String, default="user")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    # Relaciones
    league_memberships: Mapped[List["LeagueMember"]] = relationship("LeagueMember", back_populates="user")
    selections: Mapped[List["RaceSelection"]] = relationship(
        "RaceSelection", back_populates="user", foreign_keys="RaceSelection.user_id"
    )
