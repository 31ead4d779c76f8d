"""
SQLAlchemy models for game sessions.
"""

from datetime import datetime
from sqlalchemy import Column, String, DateTime, Text

from .database import Base


class Game(Base):
    __tablename__ = "games"

    id = Column(String(36), primary_key=True)  # uuid
    name = Column(String(128), nullable=False)  # user-defined game name
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    status = Column(String(32), nullable=False, default="active")  # active | finished
    game_state = Column(Text, nullable=False)  # JSON string of full game state
    # JSON: {"roster": [{"id", "name"}], "weather_mode": str, "legendary_toggles": {id: bool}}
    config = Column(Text, nullable=False)
    action_log = Column(Text, nullable=False, default="[]")  # JSON array of applied actions
