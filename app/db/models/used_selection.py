# app/db/models/used_selection.py
from datetime import datetime
from sqlalchemy import Integer, ForeignKey, UniqueConstraint, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func
from app.db.session import Base

class UsedSelection(Base):
    """
    Libro de reutilización por (usuario, liga).

    driver_cycles / team_cycles son pilas de ciclos: listas de listas de nombres
    canónicos, el último elemento es el ciclo actual. Principal y reserva
    comparten el mismo ciclo de pilotos.

    OJO: son columnas JSON sin tracking de mutaciones; hay que reasignar la
    lista entera para que SQLAlchemy detecte el cambio (services/reuse_cycles.py lo hace).
    """
    __tablename__ = "used_selections"
    __table_args__ = (
        UniqueConstraint("user_id", "league_id", name="uq_used_user_league"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    league_id: Mapped[int] = mapped_column(Integer, ForeignKey("leagues.id"), nullable=False)

    driver_cycles: Mapped[list] = mapped_column(JSON, default=lambda: [[]])
    team_cycles: Mapped[list] = mapped_column(JSON, default=lambda: [[]])

    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), onupdate=func.now(), server_default=func.now())
