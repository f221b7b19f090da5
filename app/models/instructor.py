from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String
from sqlalchemy.sql import func

from app.core.db import Base
from app.models.base import BigIntId

# 保留的超级管理员 ID，对任何资源都有权限，无需 ownership 记录
ADMIN_INSTRUCTOR_ID = 0


class Instructor(Base):
    __tablename__ = "instructors"

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True)
    display_name = Column(String(255), nullable=False)
    display_avatar = Column(String(512), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    last_active = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class GameOwnership(Base):
    __tablename__ = "game_ownership"

    game_id = Column(BigIntId, ForeignKey("games.id", ondelete="CASCADE"), primary_key=True)
    instructor_id = Column(BigIntId, ForeignKey("instructors.id", ondelete="CASCADE"), primary_key=True)
    owner = Column(Boolean, nullable=False, default=False)


class CourseOwnership(Base):
    __tablename__ = "course_ownership"

    course_id = Column(BigIntId, ForeignKey("courses.id", ondelete="CASCADE"), primary_key=True)
    instructor_id = Column(BigIntId, ForeignKey("instructors.id", ondelete="CASCADE"), primary_key=True)
    owner = Column(Boolean, nullable=False, default=False)


class GroupOwnership(Base):
    __tablename__ = "group_ownership"

    group_id = Column(BigIntId, ForeignKey("groups.id", ondelete="CASCADE"), primary_key=True)
    instructor_id = Column(BigIntId, ForeignKey("instructors.id", ondelete="CASCADE"), primary_key=True)
    owner = Column(Boolean, nullable=False, default=False)
