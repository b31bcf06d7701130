import os
from dotenv import load_dotenv

load_dotenv()

# Base de datos
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./fantasy_f1.db")

# JWT (los tokens los emite el servicio de auth, aquí solo se decodifican)
SECRET_KEY = os.getenv("SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173"
    ).split(",")
    if origin.strip()
]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# --- Reglas del juego ---
SELECTION_LOCK_MARGIN_MINUTES = int(os.getenv("SELECTION_LOCK_MARGIN_MINUTES", "5"))
CARDS_MIN_SEASON = int(os.getenv("CARDS_MIN_SEASON", "2026"))
MAX_SWITCHEROOS_PER_SEASON = int(os.getenv("MAX_SWITCHEROOS_PER_SEASON", "3"))

# Composición del mazo (hay que llenar los slots EXACTOS, no "hasta")
DECK_DRIVER_SLOTS = int(os.getenv("DECK_DRIVER_SLOTS", "12"))
DECK_TEAM_SLOTS = int(os.getenv("DECK_TEAM_SLOTS", "10"))
DECK_MAX_GOLD_DRIVER = int(os.getenv("DECK_MAX_GOLD_DRIVER", "2"))
DECK_MAX_GOLD_TEAM = int(os.getenv("DECK_MAX_GOLD_TEAM", "1"))
