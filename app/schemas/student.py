"""学生端请求/响应模型。"""
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field


# ----- 请求 -----
class JoinGameRequest(BaseModel):
    player_id: int
    game_id: int
    language: str = Field(..., min_length=1, description="报名使用的自然语言，如 en")


class SaveGameRequest(BaseModel):
    player_registrations_id: int
    game_state: Any = Field(..., description="客户端序列化的游戏状态（JSON）")


class LoadGameRequest(BaseModel):
    player_registrations_id: int


class LeaveGameRequest(BaseModel):
    player_id: int
    game_id: int


class SetGameLangRequest(BaseModel):
    player_id: int
    game_id: int
    language: str = Field(..., min_length=1)


class SubmitSolutionRequest(BaseModel):
    player_id: int
    exercise_id: int
    game_id: int
    client: str = ""
    submitted_code: str = ""
    metrics: Any = Field(default_factory=dict)
    result: Decimal = Field(..., ge=0, le=100, description="上游评测给出的得分，严格大于 50 视为正确")
    result_description: Any = Field(default_factory=dict)
    feedback: str = ""
    entered_at: datetime | None = Field(None, description="玩家进入题目的时间，缺省为提交时间")
    earned_rewards: list[int] = Field(default_factory=list, description="本次提交声明获得的奖励 ID")


class UnlockRequest(BaseModel):
    player_id: int
    exercise_id: int


# ----- 响应 -----
class GameMetadataResponse(BaseModel):
    registration_id: int
    progress: int
    joined_at: datetime
    left_at: datetime | None = None
    language: str
    game_id: int
    game_title: str
    game_active: bool
    game_description: str
    game_programming_language: str
    game_total_exercises: int
    game_start_date: datetime
    game_end_date: datetime


class CourseDataResponse(BaseModel):
    gamification_rule_conditions: str = Field(..., description="规则原文，服务端不解释")
    gamification_complex_rules: str
    gamification_rule_results: str
    module_ids: list[int]


class ModuleDataResponse(BaseModel):
    order: int
    title: str
    description: str
    start_date: datetime
    end_date: datetime
    exercise_ids: list[int]


class ExerciseDataResponse(BaseModel):
    order: int
    title: str
    description: str
    init_code: str
    pre_code: str
    post_code: str
    test_code: str
    check_source: str
    mode: str
    mode_parameters: Any
    difficulty: str
    hidden: bool
    locked: bool = Field(..., description="该玩家当前是否被解锁规则锁定")


class LastSolutionResponse(BaseModel):
    submitted_code: str
    metrics: Any
    result: Decimal
    result_description: Any
    feedback: str
    submitted_at: datetime
