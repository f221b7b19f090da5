from decimal import Decimal

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Numeric, String, Text, text
from sqlalchemy.sql import func

from app.core.db import Base
from app.models.base import BigIntId, JsonDoc

# result 严格大于该值才算答对
CORRECT_THRESHOLD = Decimal("50")
# 与 result 列 Numeric(5, 2) 的小数位一致，判分前先按此舍入
RESULT_QUANTUM = Decimal("0.01")


class Submission(Base):
    """提交记录，写入后不再修改。"""
    __tablename__ = "submissions"
    __table_args__ = (
        # 同一 (player, game, exercise) 至多一条 first_solution，并发抢占时由数据库裁决
        Index(
            "uq_submissions_first_solution",
            "player_id",
            "game_id",
            "exercise_id",
            unique=True,
            postgresql_where=text("first_solution"),
            sqlite_where=text("first_solution"),
        ),
        Index("ix_submissions_player_game_exercise", "player_id", "game_id", "exercise_id"),
    )

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    exercise_id = Column(BigIntId, ForeignKey("exercises.id", ondelete="CASCADE"), nullable=False)
    game_id = Column(BigIntId, ForeignKey("games.id", ondelete="CASCADE"), nullable=False)
    player_id = Column(BigIntId, ForeignKey("players.id", ondelete="CASCADE"), nullable=False)
    client = Column(String(64), nullable=False, default="")
    submitted_code = Column(Text, nullable=False, default="")
    metrics = Column(JsonDoc, nullable=False, default=dict)
    result = Column(Numeric(5, 2), nullable=False)
    result_description = Column(JsonDoc, nullable=False, default=dict)
    first_solution = Column(Boolean, nullable=False, default=False)
    feedback = Column(Text, nullable=False, default="")
    earned_rewards = Column(JsonDoc, nullable=False, default=list)
    entered_at = Column(DateTime(timezone=True), nullable=False)
    submitted_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
