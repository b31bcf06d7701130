# app/db/models/card.py
from sqlalchemy import String, Integer, Boolean, JSON, UniqueConstraint, Enum as SqEnum
from sqlalchemy.orm import Mapped, mapped_column
from typing import Any
import enum
from app.db.session import Base

# --- ENUMS PARA CATEGORIZACIÓN ---
class CardType(str, enum.Enum):
    DRIVER = "driver"
    TEAM = "team"

class CardTier(str, enum.Enum):
    GOLD = "gold"
    SILVER = "silver"
    BRONZE = "bronze"

class CardTarget(str, enum.Enum):
    PLAYER = "player"   # Mirror
    DRIVER = "driver"   # Switcheroo
    TEAM = "team"       # Espionage

# Efectos que se resuelven al ACTIVAR la carta (se guardan, nunca se recalculan)
MYSTERY_EFFECT = "mystery"
RANDOM_EFFECT = "random"


class Card(Base):
    """Catálogo estático de cartas de poder."""
    __tablename__ = "cards"
    __table_args__ = (
        # Mismo nombre permitido para carta de piloto y de equipo ("Mystery Card", "Bottom 5")
        UniqueConstraint("name", "type", name="uq_card_name_type"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    type: Mapped[CardType] = mapped_column(SqEnum(CardType), nullable=False, index=True)
    tier: Mapped[CardTier] = mapped_column(SqEnum(CardTier), nullable=False)
    slot_cost: Mapped[int] = mapped_column(Integer, nullable=False)  # 1–4
    effect_type: Mapped[str] = mapped_column(String, nullable=False)
    effect_value: Mapped[Any] = mapped_column(JSON, nullable=True)
    description: Mapped[str] = mapped_column(String, default="")
    requires_target: Mapped[CardTarget | None] = mapped_column(SqEnum(CardTarget), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "tier": self.tier.value,
            "slot_cost": self.slot_cost,
            "effect_type": self.effect_type,
            "effect_value": self.effect_value,
            "description": self.description,
            "requires_target": self.requires_target.value if self.requires_target else None,
            "is_active": self.is_active,
        }
