"""教师端操作。每个操作先经 access_service 鉴权，再委托给 repositories；写操作在单个事务内完成。"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.db import is_foreign_key_violation, is_unique_violation, transaction
from app.core.errors import Conflict, NotFound, Unprocessable
from app.models.course import split_list
from app.models.game import Game
from app.models.instructor import ADMIN_INSTRUCTOR_ID
from app.models.submission import Submission
from app.repositories import ownership_repository, player_repository, submission_repository
from app.repositories.course_repository import count_course_exercises, get_course_by_id, get_exercise_course_id
from app.repositories.game_repository import (
    count_game_players,
    create_game as repo_create_game,
    list_all_game_ids,
    list_game_ids_for_instructor,
    update_game,
)
from app.services.access_service import require_admin, require_course_access, require_game_access, require_group_access
from app.services.ownership_service import ResourceType, Role, resolve_role
from app.services.progression_service import progress_percentage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstructorGameMetadata:
    game: Game
    is_owner: bool
    player_count: int


@dataclass(frozen=True)
class StudentProgress:
    attempts: int
    solved_exercises: int
    progress: float


@dataclass(frozen=True)
class StudentExercises:
    attempted_exercises: list[int]
    solved_exercises: list[int]


@dataclass(frozen=True)
class ExerciseStats:
    attempts: int
    successful_attempts: int
    difficulty: float
    solved_percentage: float


# ----- 查询 -----
async def get_instructor_games(db: AsyncSession, instructor_id: int) -> list[int]:
    """教师参与的游戏 ID；管理员返回全部游戏。"""
    if instructor_id == ADMIN_INSTRUCTOR_ID:
        return await list_all_game_ids(db)
    if await ownership_repository.get_instructor_by_id(db, instructor_id) is None:
        raise NotFound(f"Instructor with ID {instructor_id} not found")
    return await list_game_ids_for_instructor(db, instructor_id)


async def get_instructor_game_metadata(db: AsyncSession, instructor_id: int, game_id: int) -> InstructorGameMetadata:
    game = await require_game_access(db, instructor_id, game_id)
    role = await resolve_role(db, instructor_id, ResourceType.GAME, game_id)
    return InstructorGameMetadata(
        game=game,
        is_owner=role >= Role.OWNER,
        player_count=await count_game_players(db, game_id),
    )


async def list_students(
    db: AsyncSession,
    instructor_id: int,
    game_id: int,
    group_id: int | None = None,
    only_active: bool = False,
) -> list[int]:
    await require_game_access(db, instructor_id, game_id)
    if group_id is not None:
        await require_group_access(db, instructor_id, group_id)
    return await player_repository.list_game_player_ids(db, game_id, group_id=group_id, only_active=only_active)


async def _require_registration(db: AsyncSession, player_id: int, game_id: int):
    registration = await player_repository.get_registration(db, player_id, game_id)
    if registration is None:
        raise NotFound(f"Player {player_id} is not registered in game {game_id}")
    return registration


async def get_student_progress(db: AsyncSession, instructor_id: int, game_id: int, player_id: int) -> StudentProgress:
    game = await require_game_access(db, instructor_id, game_id)
    registration = await _require_registration(db, player_id, game_id)
    solved = await submission_repository.list_solved_exercise_ids(db, player_id, game_id)
    return StudentProgress(
        attempts=await submission_repository.count_player_attempts(db, player_id, game_id),
        solved_exercises=len(solved),
        progress=progress_percentage(registration.progress, game.total_exercises),
    )


async def get_student_exercises(db: AsyncSession, instructor_id: int, game_id: int, player_id: int) -> StudentExercises:
    await require_game_access(db, instructor_id, game_id)
    await _require_registration(db, player_id, game_id)
    solved = await submission_repository.list_solved_exercise_ids(db, player_id, game_id)
    return StudentExercises(
        attempted_exercises=await submission_repository.list_attempted_exercise_ids(db, player_id, game_id),
        solved_exercises=sorted(solved),
    )


async def get_student_submissions(
    db: AsyncSession,
    instructor_id: int,
    game_id: int,
    player_id: int,
    success_only: bool = False,
) -> list[int]:
    await require_game_access(db, instructor_id, game_id)
    await _require_registration(db, player_id, game_id)
    return await submission_repository.list_submission_ids(
        db, game_id, player_id=player_id, success_only=success_only
    )


async def get_submission_data(db: AsyncSession, instructor_id: int, submission_id: int) -> Submission:
    submission = await submission_repository.get_submission_by_id(db, submission_id)
    if submission is None:
        raise NotFound(f"Submission with ID {submission_id} not found")
    await require_game_access(db, instructor_id, submission.game_id)
    return submission


async def _require_game_exercise(db: AsyncSession, game: Game, exercise_id: int) -> None:
    course_id = await get_exercise_course_id(db, exercise_id)
    if course_id is None:
        raise NotFound(f"Exercise with ID {exercise_id} not found")
    if course_id != game.course_id:
        raise Unprocessable(f"Exercise {exercise_id} does not belong to the course of game {game.id}")


async def get_exercise_stats(db: AsyncSession, instructor_id: int, game_id: int, exercise_id: int) -> ExerciseStats:
    """difficulty = 100 - 正确率；solved_percentage = 首次答对人数 / 报名人数。"""
    game = await require_game_access(db, instructor_id, game_id)
    await _require_game_exercise(db, game, exercise_id)
    attempts, successful, first_solutions = await submission_repository.get_exercise_counts(db, game_id, exercise_id)
    players = await count_game_players(db, game_id)
    success_rate = successful / attempts * 100 if attempts else 0.0
    return ExerciseStats(
        attempts=attempts,
        successful_attempts=successful,
        difficulty=100.0 - success_rate if attempts else 0.0,
        solved_percentage=first_solutions / players * 100 if players else 0.0,
    )


async def get_exercise_submissions(
    db: AsyncSession,
    instructor_id: int,
    game_id: int,
    exercise_id: int,
    success_only: bool = False,
) -> list[int]:
    game = await require_game_access(db, instructor_id, game_id)
    await _require_game_exercise(db, game, exercise_id)
    return await submission_repository.list_submission_ids(
        db, game_id, exercise_id=exercise_id, success_only=success_only
    )


async def translate_email_to_player_id(db: AsyncSession, email: str) -> int:
    player = await player_repository.get_player_by_email(db, email)
    if player is None:
        raise NotFound(f"Player with email {email} not found")
    return player.id


# ----- 游戏管理 -----
async def create_game(
    db: AsyncSession,
    instructor_id: int,
    *,
    title: str,
    course_id: int,
    programming_language: str,
    public: bool = False,
    active: bool = False,
    description: str = "",
    module_lock: float = 0.0,
    exercise_lock: bool = False,
) -> int:
    """基于课程创建游戏，创建者成为 owner。公开课程任何教师可用，私有课程需有课程权限。"""
    async with transaction(db):
        if await ownership_repository.get_instructor_by_id(db, instructor_id) is None:
            raise NotFound(f"Instructor with ID {instructor_id} not found")
        course = await get_course_by_id(db, course_id)
        if course is None:
            raise NotFound(f"Course with ID {course_id} not found")
        if not course.public:
            await require_course_access(db, instructor_id, course_id)
        allowed = split_list(course.programming_languages)
        if programming_language not in allowed:
            raise Unprocessable(
                f"Programming language '{programming_language}' is not offered by course {course_id}; allowed: {allowed}"
            )
        now = datetime.now(timezone.utc)
        game = await repo_create_game(
            db,
            title=title,
            public=public,
            active=active,
            description=description,
            course_id=course_id,
            programming_language=programming_language,
            module_lock=module_lock,
            exercise_lock=exercise_lock,
            total_exercises=await count_course_exercises(db, course_id, programming_language),
            start_date=now,
            end_date=now + timedelta(days=settings.game_duration_days),
        )
        game_id = game.id
        await ownership_repository.add_game_ownership(db, game_id, instructor_id, owner=True)
    logger.info("instructor %s created game %s from course %s", instructor_id, game_id, course_id)
    return game_id


async def modify_game(db: AsyncSession, instructor_id: int, game_id: int, **changes) -> bool:
    """只更新传入且非 None 的字段。"""
    values = {k: v for k, v in changes.items() if v is not None}
    async with transaction(db):
        await require_game_access(db, instructor_id, game_id, owner=True)
        await update_game(db, game_id, **values)
    logger.info("instructor %s modified game %s: %s", instructor_id, game_id, sorted(values))
    return True


async def _set_game_active(db: AsyncSession, instructor_id: int, game_id: int, active: bool) -> bool:
    async with transaction(db):
        await require_game_access(db, instructor_id, game_id, owner=True)
        await update_game(db, game_id, active=active)
    logger.info("instructor %s set game %s active=%s", instructor_id, game_id, active)
    return True


async def activate_game(db: AsyncSession, instructor_id: int, game_id: int) -> bool:
    return await _set_game_active(db, instructor_id, game_id, True)


async def stop_game(db: AsyncSession, instructor_id: int, game_id: int) -> bool:
    return await _set_game_active(db, instructor_id, game_id, False)


async def add_game_instructor(
    db: AsyncSession,
    requesting_instructor_id: int,
    game_id: int,
    instructor_to_add_id: int,
    is_owner: bool = False,
) -> bool:
    try:
        async with transaction(db):
            await require_game_access(db, requesting_instructor_id, game_id, owner=True)
            if await ownership_repository.get_instructor_by_id(db, instructor_to_add_id) is None:
                raise NotFound(f"Instructor with ID {instructor_to_add_id} not found")
            await ownership_repository.add_game_ownership(db, game_id, instructor_to_add_id, owner=is_owner)
    except IntegrityError as e:
        if is_unique_violation(e):
            raise Conflict(f"Instructor {instructor_to_add_id} is already assigned to game {game_id}") from e
        raise
    logger.info("instructor %s added instructor %s to game %s (owner=%s)",
                requesting_instructor_id, instructor_to_add_id, game_id, is_owner)
    return True


async def remove_game_instructor(
    db: AsyncSession,
    requesting_instructor_id: int,
    game_id: int,
    instructor_to_remove_id: int,
) -> bool:
    async with transaction(db):
        await require_game_access(db, requesting_instructor_id, game_id, owner=True)
        removed = await ownership_repository.remove_game_ownership(db, game_id, instructor_to_remove_id)
        if removed == 0:
            raise NotFound(f"Instructor {instructor_to_remove_id} is not assigned to game {game_id}")
    logger.info("instructor %s removed instructor %s from game %s",
                requesting_instructor_id, instructor_to_remove_id, game_id)
    return True


async def remove_game_student(db: AsyncSession, instructor_id: int, game_id: int, student_id: int) -> bool:
    async with transaction(db):
        await require_game_access(db, instructor_id, game_id)
        removed = await player_repository.delete_registration(db, student_id, game_id)
        if removed == 0:
            raise NotFound(f"Player {student_id} is not registered in game {game_id}")
    logger.info("instructor %s removed player %s from game %s", instructor_id, student_id, game_id)
    return True


# ----- 小组管理 -----
async def create_group(
    db: AsyncSession,
    instructor_id: int,
    display_name: str,
    display_avatar: str | None = None,
    member_list: list[int] | None = None,
) -> int:
    """创建小组并加入初始成员，创建者成为 owner；名称重复抛 Conflict。"""
    members = list(dict.fromkeys(member_list or []))
    try:
        async with transaction(db):
            if await ownership_repository.get_instructor_by_id(db, instructor_id) is None:
                raise NotFound(f"Instructor with ID {instructor_id} not found")
            for player_id in members:
                if await player_repository.get_player_by_id(db, player_id) is None:
                    raise NotFound(f"Player with ID {player_id} not found")
            group = await player_repository.create_group(
                db, display_name=display_name, display_avatar=display_avatar
            )
            group_id = group.id
            await ownership_repository.add_group_ownership(db, group_id, instructor_id, owner=True)
            for player_id in members:
                await player_repository.insert_group_member(db, player_id, group_id)
    except IntegrityError as e:
        if is_unique_violation(e):
            raise Conflict(f"Group name '{display_name}' is already taken") from e
        raise
    logger.info("instructor %s created group %s with %d members", instructor_id, group_id, len(members))
    return group_id


async def dissolve_group(db: AsyncSession, instructor_id: int, group_id: int) -> bool:
    async with transaction(db):
        await require_group_access(db, instructor_id, group_id, owner=True)
        await player_repository.clear_group_members(db, group_id)
        await ownership_repository.clear_group_ownership(db, group_id)
        await player_repository.delete_group(db, group_id)
    logger.info("instructor %s dissolved group %s", instructor_id, group_id)
    return True


async def add_group_member(db: AsyncSession, instructor_id: int, group_id: int, player_id: int) -> bool:
    try:
        async with transaction(db):
            await require_group_access(db, instructor_id, group_id)
            if await player_repository.get_player_by_id(db, player_id) is None:
                raise NotFound(f"Player with ID {player_id} not found")
            await player_repository.insert_group_member(db, player_id, group_id)
    except IntegrityError as e:
        if is_unique_violation(e):
            raise Conflict(f"Player {player_id} is already a member of group {group_id}") from e
        raise
    return True


async def remove_group_member(db: AsyncSession, instructor_id: int, group_id: int, player_id: int) -> bool:
    async with transaction(db):
        await require_group_access(db, instructor_id, group_id)
        if await player_repository.remove_group_member(db, player_id, group_id) == 0:
            raise NotFound(f"Player {player_id} is not a member of group {group_id}")
    return True


# ----- 玩家管理 -----
async def create_player(
    db: AsyncSession,
    instructor_id: int,
    *,
    email: str,
    display_name: str,
    display_avatar: str | None = None,
    game_id: int | None = None,
    group_id: int | None = None,
    language: str | None = None,
) -> int:
    """创建玩家，可顺带报名游戏、加入小组。不指定游戏和小组时仅管理员可用。"""
    try:
        async with transaction(db):
            if game_id is None and group_id is None:
                require_admin(instructor_id)
            if game_id is not None:
                await require_game_access(db, instructor_id, game_id)
            if group_id is not None:
                await require_group_access(db, instructor_id, group_id)
            player = await player_repository.create_player(
                db, email=email, display_name=display_name, display_avatar=display_avatar
            )
            player_id = player.id
            if game_id is not None:
                await player_repository.insert_registration(
                    db, player_id=player_id, game_id=game_id, language=language or settings.default_language
                )
            if group_id is not None:
                await player_repository.insert_group_member(db, player_id, group_id)
    except IntegrityError as e:
        if is_unique_violation(e):
            raise Conflict(f"Player email {email} is already taken") from e
        if is_foreign_key_violation(e):
            raise NotFound("Referenced game or group not found") from e
        raise
    logger.info("instructor %s created player %s", instructor_id, player_id)
    return player_id


async def disable_player(db: AsyncSession, instructor_id: int, player_id: int) -> bool:
    require_admin(instructor_id)
    async with transaction(db):
        if await player_repository.set_player_disabled(db, player_id) == 0:
            raise NotFound(f"Player with ID {player_id} not found")
    logger.info("player %s disabled", player_id)
    return True


async def delete_player(db: AsyncSession, instructor_id: int, player_id: int) -> bool:
    require_admin(instructor_id)
    async with transaction(db):
        if await player_repository.delete_player_cascade(db, player_id) == 0:
            raise NotFound(f"Player with ID {player_id} not found")
    logger.info("player %s deleted with all related records", player_id)
    return True
