from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Float, ForeignKey, Integer, String, Text

from app.core.db import Base
from app.models.base import BigIntId, TimestampMixin


class Game(Base, TimestampMixin):
    __tablename__ = "games"
    __table_args__ = (CheckConstraint("module_lock >= 0 AND module_lock <= 1", name="ck_games_module_lock"),)

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    public = Column(Boolean, nullable=False, default=False)
    active = Column(Boolean, nullable=False, default=False)
    description = Column(Text, nullable=False, default="")
    course_id = Column(BigIntId, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    programming_language = Column(String(32), nullable=False)
    module_lock = Column(Float, nullable=False, default=0.0)
    exercise_lock = Column(Boolean, nullable=False, default=False)
    total_exercises = Column(Integer, nullable=False, default=0)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
