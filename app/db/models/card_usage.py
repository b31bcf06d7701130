# app/db/models/card_usage.py
from datetime import datetime
from sqlalchemy import Integer, ForeignKey, UniqueConstraint, DateTime, Enum as SqEnum
from sqlalchemy.orm import Mapped, mapped_column
from app.db.session import Base
from app.db.models.card import CardType

USAGE_CONSTRAINT = "uq_card_usage_season"

class CardUsage(Base):
    """
    ÚNICA fuente de verdad de "esta carta ya se gastó esta temporada".
    La restricción única es el punto de serialización real: dos activaciones
    concurrentes pueden pasar la validación, pero solo una inserta.
    """
    __tablename__ = "card_usages"
    __table_args__ = (
        UniqueConstraint("user_id", "league_id", "season", "card_id", name=USAGE_CONSTRAINT),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    league_id: Mapped[int] = mapped_column(Integer, ForeignKey("leagues.id"), nullable=False)
    season: Mapped[int] = mapped_column(Integer, nullable=False)
    card_id: Mapped[int] = mapped_column(Integer, ForeignKey("cards.id"), nullable=False)
    card_type: Mapped[CardType] = mapped_column(SqEnum(CardType), nullable=False)
    round: Mapped[int] = mapped_column(Integer, nullable=False)
    used_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
