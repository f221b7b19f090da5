from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.sql import func

from app.core.db import Base
from app.models.base import BigIntId, JsonDoc


class Player(Base):
    __tablename__ = "players"

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True)
    display_name = Column(String(255), nullable=False)
    display_avatar = Column(String(512), nullable=True)
    points = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    last_active = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    disabled = Column(Boolean, nullable=False, default=False)


class Group(Base):
    __tablename__ = "groups"

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    display_name = Column(String(255), nullable=False, unique=True)
    display_avatar = Column(String(512), nullable=True)


class PlayerGroup(Base):
    """玩家-小组成员关系，(player_id, group_id) 主键即幂等边界。"""
    __tablename__ = "player_groups"

    player_id = Column(BigIntId, ForeignKey("players.id", ondelete="CASCADE"), primary_key=True)
    group_id = Column(BigIntId, ForeignKey("groups.id", ondelete="CASCADE"), primary_key=True)
    joined_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    left_at = Column(DateTime(timezone=True), nullable=True)


class PlayerRegistration(Base):
    """玩家参加某游戏的报名记录；离开时只写 left_at，不删除。"""
    __tablename__ = "player_registrations"
    __table_args__ = (UniqueConstraint("player_id", "game_id", name="uq_player_registrations_player_game"),)

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    player_id = Column(BigIntId, ForeignKey("players.id", ondelete="CASCADE"), nullable=False, index=True)
    game_id = Column(BigIntId, ForeignKey("games.id", ondelete="CASCADE"), nullable=False, index=True)
    language = Column(String(16), nullable=False)
    progress = Column(Integer, nullable=False, default=0)
    game_state = Column(JsonDoc, nullable=False, default=dict)
    saved_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    joined_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    left_at = Column(DateTime(timezone=True), nullable=True)


class PlayerUnlock(Base):
    __tablename__ = "player_unlocks"

    player_id = Column(BigIntId, ForeignKey("players.id", ondelete="CASCADE"), primary_key=True)
    exercise_id = Column(BigIntId, ForeignKey("exercises.id", ondelete="CASCADE"), primary_key=True)
    unlocked_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
