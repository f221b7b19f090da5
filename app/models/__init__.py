from app.core.db import Base
from app.models.base import TimestampMixin
from app.models.course import Course, Exercise, Module
from app.models.game import Game
from app.models.instructor import (
    ADMIN_INSTRUCTOR_ID,
    CourseOwnership,
    GameOwnership,
    GroupOwnership,
    Instructor,
)
from app.models.invite import Invite
from app.models.player import Group, Player, PlayerGroup, PlayerRegistration, PlayerUnlock
from app.models.reward import PlayerReward, Reward
from app.models.submission import CORRECT_THRESHOLD, Submission

__all__ = [
    "Base",
    "TimestampMixin",
    "ADMIN_INSTRUCTOR_ID",
    "Course",
    "Module",
    "Exercise",
    "Game",
    "Instructor",
    "GameOwnership",
    "CourseOwnership",
    "GroupOwnership",
    "Invite",
    "Player",
    "Group",
    "PlayerGroup",
    "PlayerRegistration",
    "PlayerUnlock",
    "Reward",
    "PlayerReward",
    "Submission",
    "CORRECT_THRESHOLD",
]
