"""教师端请求/响应模型。"""
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field


# ----- 游戏 -----
class CreateGameRequest(BaseModel):
    instructor_id: int
    title: str = Field(..., min_length=1)
    public: bool = False
    active: bool = False
    description: str = ""
    course_id: int
    programming_language: str = Field(..., min_length=1)
    module_lock: float = Field(0.0, ge=0, le=1, description="进入下一模块前需完成上一模块题目的比例")
    exercise_lock: bool = Field(False, description="是否必须按顺序完成模块内的题目")


class ModifyGameRequest(BaseModel):
    instructor_id: int
    game_id: int
    title: str | None = None
    public: bool | None = None
    active: bool | None = None
    description: str | None = None
    module_lock: float | None = Field(None, ge=0, le=1)
    exercise_lock: bool | None = None


class AddGameInstructorRequest(BaseModel):
    requesting_instructor_id: int
    game_id: int
    instructor_to_add_id: int
    is_owner: bool = False


class RemoveGameInstructorRequest(BaseModel):
    requesting_instructor_id: int
    game_id: int
    instructor_to_remove_id: int


class GameActionRequest(BaseModel):
    instructor_id: int
    game_id: int


class RemoveGameStudentRequest(BaseModel):
    instructor_id: int
    game_id: int
    student_id: int


# ----- 小组 -----
class CreateGroupRequest(BaseModel):
    instructor_id: int
    display_name: str = Field(..., min_length=1)
    display_avatar: str | None = None
    member_list: list[int] = Field(default_factory=list)


class DissolveGroupRequest(BaseModel):
    instructor_id: int
    group_id: int


class GroupMemberRequest(BaseModel):
    instructor_id: int
    group_id: int
    player_id: int


# ----- 玩家 -----
class CreatePlayerRequest(BaseModel):
    instructor_id: int
    email: str = Field(..., min_length=3)
    display_name: str = Field(..., min_length=1)
    display_avatar: str | None = None
    game_id: int | None = None
    group_id: int | None = None
    language: str | None = Field(None, description="报名语言，缺省使用 DEFAULT_LANGUAGE")


class PlayerActionRequest(BaseModel):
    instructor_id: int
    player_id: int


# ----- 邀请 -----
class GenerateInviteLinkRequest(BaseModel):
    instructor_id: int
    game_id: int | None = None
    group_id: int | None = None


class ProcessInviteLinkRequest(BaseModel):
    player_id: int
    uuid: str = Field(..., min_length=1, description="邀请链接 UUID")


# ----- 响应 -----
class InstructorGameMetadataResponse(BaseModel):
    title: str
    description: str
    active: bool
    public: bool
    total_exercises: int
    start_date: datetime
    end_date: datetime
    is_owner: bool
    player_count: int


class StudentProgressResponse(BaseModel):
    attempts: int
    solved_exercises: int
    progress: float = Field(..., description="进度百分比，0-100")


class StudentExercisesResponse(BaseModel):
    attempted_exercises: list[int]
    solved_exercises: list[int]


class SubmissionDataResponse(BaseModel):
    id: int
    exercise_id: int
    game_id: int
    player_id: int
    client: str
    submitted_code: str
    metrics: Any
    result: Decimal
    result_description: Any
    first_solution: bool
    feedback: str
    earned_rewards: Any
    entered_at: datetime
    submitted_at: datetime

    model_config = {"from_attributes": True}


class ExerciseStatsResponse(BaseModel):
    attempts: int
    successful_attempts: int
    difficulty: float = Field(..., description="100 - 正确率")
    solved_percentage: float = Field(..., description="首次答对人数占报名人数的百分比")


class InviteLinkResponse(BaseModel):
    invite_uuid: str
