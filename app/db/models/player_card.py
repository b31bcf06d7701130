# app/db/models/player_card.py
from sqlalchemy import Integer, Boolean, ForeignKey, UniqueConstraint, Enum as SqEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.db.session import Base
from app.db.models.card import Card, CardType

class PlayerCard(Base):
    """
    Carta en la colección de un jugador para una liga/temporada.
    selected=True -> forma parte del mazo de la temporada.
    """
    __tablename__ = "player_cards"
    __table_args__ = (
        UniqueConstraint("user_id", "league_id", "season", "card_id", name="uq_player_card"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    league_id: Mapped[int] = mapped_column(Integer, ForeignKey("leagues.id"), nullable=False)
    season: Mapped[int] = mapped_column(Integer, nullable=False)
    card_id: Mapped[int] = mapped_column(Integer, ForeignKey("cards.id"), nullable=False)
    card_type: Mapped[CardType] = mapped_column(SqEnum(CardType), nullable=False)
    selected: Mapped[bool] = mapped_column(Boolean, default=False)

    # Relaciones
    card: Mapped["Card"] = relationship("Card")
