"""学生端操作：报名与离开游戏、存读档、浏览课程内容、提交与解锁。"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import is_foreign_key_violation, is_unique_violation, transaction
from app.core.errors import Conflict, Internal, NotFound, Unprocessable
from app.models.course import Course, Exercise, Module, split_list
from app.models.game import Game
from app.models.player import PlayerRegistration
from app.models.submission import Submission
from app.repositories.course_repository import (
    get_course_by_id,
    get_exercise_by_id,
    get_exercise_course_id,
    get_module_by_id,
    list_exercise_ids,
    list_module_ids,
)
from app.repositories.game_repository import get_game_by_id, list_available_game_ids
from app.repositories.player_repository import (
    get_player_by_id,
    get_registration,
    get_registration_by_id,
    insert_registration,
    insert_unlock_if_absent,
    list_registration_ids,
    mark_registration_left,
    save_game_state,
    set_registration_language,
)
from app.repositories.submission_repository import get_last_solution as repo_get_last_solution
from app.services import grading_service
from app.services.progression_service import ExerciseStatus, compute_exercise_status, load_exercise_snapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CourseData:
    course: Course
    module_ids: list[int]


@dataclass(frozen=True)
class ModuleData:
    module: Module
    exercise_ids: list[int]


@dataclass(frozen=True)
class ExerciseData:
    exercise: Exercise
    status: ExerciseStatus


async def get_available_games(db: AsyncSession) -> list[int]:
    return await list_available_game_ids(db)


async def join_game(db: AsyncSession, player_id: int, game_id: int, language: str) -> int:
    """报名游戏，返回报名 ID。已报名抛 Conflict，玩家或游戏不存在抛 NotFound。"""
    try:
        async with transaction(db):
            registration = await insert_registration(db, player_id=player_id, game_id=game_id, language=language)
            registration_id = registration.id
    except IntegrityError as e:
        if is_unique_violation(e):
            logger.warning("player %s already registered in game %s", player_id, game_id)
            raise Conflict(f"Player {player_id} is already registered in game {game_id}") from e
        if is_foreign_key_violation(e):
            raise NotFound(f"Player with ID {player_id} or Game with ID {game_id} not found") from e
        raise
    logger.info("player %s joined game %s (registration %s)", player_id, game_id, registration_id)
    return registration_id


async def save_game(db: AsyncSession, registration_id: int, game_state: Any) -> bool:
    async with transaction(db):
        updated = await save_game_state(db, registration_id, game_state)
        if updated == 0:
            raise NotFound(f"Player registration with ID {registration_id} not found")
        if updated != 1:
            raise Internal(f"Saving game state affected {updated} rows")
    return True


async def load_game(db: AsyncSession, registration_id: int) -> Any:
    registration = await get_registration_by_id(db, registration_id)
    if registration is None:
        raise NotFound(f"Player registration with ID {registration_id} not found")
    return registration.game_state


async def leave_game(db: AsyncSession, player_id: int, game_id: int) -> None:
    """标记离开，不删除报名记录；没有进行中的报名抛 NotFound。"""
    async with transaction(db):
        updated = await mark_registration_left(db, player_id, game_id)
        if updated == 0:
            raise NotFound(f"Active player registration not found for player {player_id} in game {game_id}")
    logger.info("player %s left game %s", player_id, game_id)


async def set_game_lang(db: AsyncSession, player_id: int, game_id: int, language: str) -> bool:
    """切换报名语言，语言须在课程允许列表内。"""
    async with transaction(db):
        registration = await get_registration(db, player_id, game_id)
        if registration is None:
            raise NotFound(f"Player registration not found for player {player_id} in game {game_id}")
        game = await get_game_by_id(db, game_id)
        course = await get_course_by_id(db, game.course_id) if game is not None else None
        if course is None:
            raise NotFound(f"Course for game {game_id} not found")
        allowed = split_list(course.languages)
        if language not in allowed:
            raise Unprocessable(f"Language '{language}' is not allowed for this game; allowed: {allowed}")
        await set_registration_language(db, player_id, game_id, language)
    return True


async def get_player_games(db: AsyncSession, player_id: int, active: bool) -> list[int]:
    if await get_player_by_id(db, player_id) is None:
        raise NotFound(f"Player with ID {player_id} not found")
    return await list_registration_ids(db, player_id, only_active=active)


async def get_game_metadata(db: AsyncSession, registration_id: int) -> tuple[PlayerRegistration, Game]:
    registration = await get_registration_by_id(db, registration_id)
    if registration is None:
        raise NotFound(f"Player registration with ID {registration_id} not found")
    game = await get_game_by_id(db, registration.game_id)
    if game is None:
        raise NotFound(f"Game with ID {registration.game_id} not found")
    return registration, game


async def get_course_data(db: AsyncSession, game_id: int, language: str) -> CourseData:
    """课程的游戏化规则原文与指定语言的模块 ID。"""
    game = await get_game_by_id(db, game_id)
    if game is None:
        raise NotFound(f"Game with ID {game_id} not found")
    course = await get_course_by_id(db, game.course_id)
    if course is None:
        raise NotFound(f"Course for game {game_id} not found")
    return CourseData(course=course, module_ids=await list_module_ids(db, course.id, language))


async def get_module_data(db: AsyncSession, module_id: int, language: str, programming_language: str) -> ModuleData:
    module = await get_module_by_id(db, module_id)
    if module is None:
        raise NotFound(f"Module with ID {module_id} not found")
    exercise_ids = await list_exercise_ids(
        db, module_id, language=language, programming_language=programming_language
    )
    return ModuleData(module=module, exercise_ids=exercise_ids)


async def get_exercise_data(db: AsyncSession, exercise_id: int, game_id: int, player_id: int) -> ExerciseData:
    """题目内容与该玩家视角下的 hidden / locked。"""
    exercise = await get_exercise_by_id(db, exercise_id)
    if exercise is None:
        raise NotFound(f"Exercise with ID {exercise_id} not found")
    game = await get_game_by_id(db, game_id)
    if game is None:
        raise NotFound(f"Game with ID {game_id} not found")
    if await get_exercise_course_id(db, exercise_id) != game.course_id:
        raise Unprocessable(f"Exercise {exercise_id} does not belong to the course of game {game_id}")
    snapshot = await load_exercise_snapshot(db, player_id, game, exercise)
    status = compute_exercise_status(snapshot)
    logger.debug(
        "exercise %s for player %s in game %s: hidden=%s locked=%s",
        exercise_id, player_id, game_id, status.hidden, status.locked,
    )
    return ExerciseData(exercise=exercise, status=status)


async def submit_solution(
    db: AsyncSession,
    player_id: int,
    game_id: int,
    exercise_id: int,
    result: Decimal,
    earned_rewards: list[int],
    details: grading_service.SubmissionDetails,
) -> bool:
    """保存提交并返回是否为首次答对。"""
    outcome = await grading_service.grade(db, player_id, game_id, exercise_id, result, earned_rewards, details)
    return outcome.first_solution


async def unlock(db: AsyncSession, player_id: int, exercise_id: int) -> None:
    """显式解锁，重复调用无副作用。"""
    async with transaction(db):
        if await get_player_by_id(db, player_id) is None:
            raise NotFound(f"Player with ID {player_id} not found")
        if await get_exercise_by_id(db, exercise_id) is None:
            raise NotFound(f"Exercise with ID {exercise_id} not found")
        created = await insert_unlock_if_absent(db, player_id, exercise_id)
    if created:
        logger.info("player %s unlocked exercise %s", player_id, exercise_id)


async def get_last_solution(db: AsyncSession, player_id: int, exercise_id: int) -> Submission | None:
    return await repo_get_last_solution(db, player_id, exercise_id)
