# app/db/models/race_card_selection.py
from datetime import datetime
from sqlalchemy import Integer, String, ForeignKey, UniqueConstraint, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING
from app.db.session import Base

if TYPE_CHECKING:
    from app.db.models.card import Card
    from app.db.models.user import User

class RaceCardSelection(Base):
    __tablename__ = "race_card_selections"
    __table_args__ = (
        # Una activación por usuario, liga y carrera
        UniqueConstraint("user_id", "league_id", "race_id", name="uq_card_selection_race"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    league_id: Mapped[int] = mapped_column(Integer, ForeignKey("leagues.id"), nullable=False)
    race_id: Mapped[int] = mapped_column(Integer, ForeignKey("race_calendar.id"), nullable=False)
    round: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    driver_card_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("cards.id"), nullable=True)
    team_card_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("cards.id"), nullable=True)

    # Objetivos de las cartas especiales
    target_player_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)  # Mirror
    target_driver: Mapped[str | None] = mapped_column(String, nullable=True)  # Switcheroo
    target_team: Mapped[str | None] = mapped_column(String, nullable=True)    # Espionage

    # Resultado de Mystery/Random: se decide al activar y ya no se toca
    mystery_transformed_card_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("cards.id"), nullable=True)
    random_transformed_card_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("cards.id"), nullable=True)

    selected_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    # Relaciones
    driver_card: Mapped["Card"] = relationship("Card", foreign_keys=[driver_card_id])
    team_card: Mapped["Card"] = relationship("Card", foreign_keys=[team_card_id])
    mystery_transformed_card: Mapped["Card"] = relationship("Card", foreign_keys=[mystery_transformed_card_id])
    random_transformed_card: Mapped["Card"] = relationship("Card", foreign_keys=[random_transformed_card_id])
    target_player: Mapped["User"] = relationship("User", foreign_keys=[target_player_id])

    def to_dict(self) -> dict:
        def card(c):
            return c.to_dict() if c else None

        return {
            "id": self.id,
            "user_id": self.user_id,
            "league_id": self.league_id,
            "race_id": self.race_id,
            "round": self.round,
            "driver_card": card(self.driver_card),
            "team_card": card(self.team_card),
            "target_player": (
                {"id": self.target_player.id, "username": self.target_player.username}
                if self.target_player else None
            ),
            "target_driver": self.target_driver,
            "target_team": self.target_team,
            "mystery_transformed_card": card(self.mystery_transformed_card),
            "random_transformed_card": card(self.random_transformed_card),
            "selected_at": self.selected_at,
        }
