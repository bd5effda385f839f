from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    Integer,
    JSON,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB

from .db import Base


class Player(Base):
    __tablename__ = "player"
    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    gender = Column(String, nullable=False, default="Other")
    level = Column(String, nullable=False, default="Beginner")
    active = Column(Boolean, nullable=False, default=True)
    status = Column(String, nullable=False, default="Free")  # "Free" | "Playing"
    visit_count = Column(Integer, nullable=False, default=0)
    shuttle_count = Column(Float, nullable=False, default=0.0)
    position = Column(Integer, nullable=False, default=0)


class CourtSession(Base):
    __tablename__ = "court_session"
    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=True)
    game_use_ids = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False)
    total_cost = Column(Float, nullable=False, default=0.0)
    currency = Column(String, nullable=False, default="THB")
    is_closed = Column(Boolean, nullable=False, default=False)
    present_player_ids = Column(
        JSON().with_variant(JSONB, "postgresql"), nullable=False
    )
    payment_status = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False)
    position = Column(Integer, nullable=False, default=0)


class GameUse(Base):
    __tablename__ = "game_use"
    id = Column(String, primary_key=True)
    timestamp = Column(DateTime(timezone=True), nullable=False)
    shuttle_session_id = Column(Integer, nullable=False)
    shuttles_used = Column(Float, nullable=False, default=1.0)
    player_ids = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False)
    player_gender_mix = Column(String, nullable=False, default="")
    avg_level = Column(Float, nullable=False, default=0.0)
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=False)
    score1 = Column(String, nullable=True)
    score2 = Column(String, nullable=True)
    position = Column(Integer, nullable=False, default=0)


class Setting(Base):
    __tablename__ = "setting"
    id = Column(String, primary_key=True)  # single row keyed "default"
    currency = Column(String, nullable=False, default="THB")
    court_fee = Column(Float, nullable=False, default=70)
    shuttle_price = Column(Float, nullable=False, default=25)
    enable_auto_select = Column(Boolean, nullable=False, default=True)
