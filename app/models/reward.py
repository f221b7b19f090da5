from sqlalchemy import Column, DateTime, ForeignKey, Integer, Interval, String, Text
from sqlalchemy.sql import func

from app.core.db import Base
from app.models.base import BigIntId


class Reward(Base):
    """课程范围内的奖励模板。"""
    __tablename__ = "rewards"

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    course_id = Column(BigIntId, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    message_when_won = Column(Text, nullable=False, default="")
    image_url = Column(String(512), nullable=True)
    valid_period = Column(Interval, nullable=True)


class PlayerReward(Base):
    """每次提交触发发放时生成一条，带各自的过期时间。"""
    __tablename__ = "player_rewards"

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    player_id = Column(BigIntId, ForeignKey("players.id", ondelete="CASCADE"), nullable=False, index=True)
    reward_id = Column(BigIntId, ForeignKey("rewards.id", ondelete="CASCADE"), nullable=False)
    game_id = Column(BigIntId, ForeignKey("games.id", ondelete="SET NULL"), nullable=True)
    count = Column(Integer, nullable=False, default=1)
    used_count = Column(Integer, nullable=False, default=0)
    obtained_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
