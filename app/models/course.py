from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.sql import func

from app.core.db import Base
from app.models.base import BigIntId, JsonDoc, TimestampMixin


class Course(Base, TimestampMixin):
    __tablename__ = "courses"

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    # 逗号分隔列表，如 "en,pt"、"python,java"
    languages = Column(String(255), nullable=False, default="")
    programming_languages = Column(String(255), nullable=False, default="")
    # 游戏化规则原文，服务端只透传不解释
    gamification_rule_conditions = Column(Text, nullable=False, default="")
    gamification_complex_rules = Column(Text, nullable=False, default="")
    gamification_rule_results = Column(Text, nullable=False, default="")
    public = Column(Boolean, nullable=False, default=False)


class Module(Base, TimestampMixin):
    __tablename__ = "modules"

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    course_id = Column(BigIntId, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    order = Column(Integer, nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    language = Column(String(16), nullable=False)
    start_date = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    end_date = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class Exercise(Base, TimestampMixin):
    __tablename__ = "exercises"

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    version = Column(Numeric(5, 1), nullable=False, default=1)
    module_id = Column(BigIntId, ForeignKey("modules.id", ondelete="CASCADE"), nullable=False, index=True)
    order = Column(Integer, nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    language = Column(String(16), nullable=False)
    programming_language = Column(String(32), nullable=False)
    init_code = Column(Text, nullable=False, default="")
    pre_code = Column(Text, nullable=False, default="")
    post_code = Column(Text, nullable=False, default="")
    test_code = Column(Text, nullable=False, default="")
    check_source = Column(Text, nullable=False, default="")
    hidden = Column(Boolean, nullable=False, default=False)
    # 作者设定的基线值，玩家视角下以计算结果为准
    locked = Column(Boolean, nullable=False, default=False)
    mode = Column(String(32), nullable=False, default="")
    mode_parameters = Column(JsonDoc, nullable=False, default=dict)
    difficulty = Column(String(32), nullable=False, default="")


def split_list(value: str | None) -> list[str]:
    """解析逗号分隔列表，去空白、去空项。"""
    return [item.strip() for item in (value or "").split(",") if item.strip()]
