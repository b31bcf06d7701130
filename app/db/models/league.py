# app/db/models/league.py
from sqlalchemy import String, Integer, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import List, TYPE_CHECKING
from app.db.session import Base

if TYPE_CHECKING:
    from app.db.models.user import User

class League(Base):
    __tablename__ = "leagues"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    # Código para unirse (ej: "X9A-2B1")
    code: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    owner_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    # Cada liga pertenece a UNA temporada (año)
    season: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    season_status: Mapped[str] = mapped_column(String, default="active")  # active | completed

    # Relaciones
    owner: Mapped["User"] = relationship("User")
    members: Mapped[List["LeagueMember"]] = relationship(
        "LeagueMember", back_populates="league", cascade="all, delete-orphan"
    )

    def member_ids(self) -> set[int]:
        return {m.user_id for m in self.members}

    def is_member(self, user_id: int) -> bool:
        return user_id == self.owner_id or user_id in self.member_ids()

    def is_admin(self, user_id: int) -> bool:
        """El dueño o cualquier miembro marcado como admin."""
        if user_id == self.owner_id:
            return True
        return any(m.user_id == user_id and m.is_admin for m in self.members)


class LeagueMember(Base):
    __tablename__ = "league_members"
    __table_args__ = (
        UniqueConstraint("league_id", "user_id", name="uq_league_user"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    league_id: Mapped[int] = mapped_column(Integer, ForeignKey("leagues.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False)

    # Relaciones
    league: Mapped["League"] = relationship("League", back_populates="members")
    user: Mapped["User"] = relationship("User", back_populates="league_memberships")
