# app/db/models/switcheroo.py
from datetime import datetime
from sqlalchemy import Integer, String, ForeignKey, UniqueConstraint, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from app.db.session import Base

class Switcheroo(Base):
    """
    Historial de switcheroos. ``sequence`` es el número de uso dentro de la
    temporada (1..MAX): la restricción única hace de compare-and-swap, si dos
    peticiones intentan gastar el mismo "hueco" solo una confirma.
    """
    __tablename__ = "switcheroos"
    __table_args__ = (
        UniqueConstraint("user_id", "league_id", "season", "sequence", name="uq_switcheroo_sequence"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    league_id: Mapped[int] = mapped_column(Integer, ForeignKey("leagues.id"), nullable=False)
    season: Mapped[int] = mapped_column(Integer, nullable=False)
    round: Mapped[int] = mapped_column(Integer, nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    original_driver: Mapped[str] = mapped_column(String, nullable=False)
    new_driver: Mapped[str] = mapped_column(String, nullable=False)
    time_used: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
