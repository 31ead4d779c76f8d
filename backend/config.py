"""
Single place for default game/session configuration.
Change DEFAULT_WEATHER_MODE to switch which weather is used when a new game does not name one.
"""
import os

# "calm" or "turbulent". This is the default for new games.
DEFAULT_WEATHER_MODE = "calm"

# Legendary toggles applied when a new game does not send any (id -> enabled). Empty = catalog defaults.
DEFAULT_LEGENDARY_TOGGLES: dict[str, bool] = {}

# Frontend origins allowed by CORS
CORS_ORIGINS = [
    o.strip()
    for o in os.environ.get("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",")
    if o.strip()
]

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
