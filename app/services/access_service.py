"""教师接口的统一鉴权：先确认资源存在（否则 NotFound），再按所需角色判定（否则 Forbidden）。"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import Forbidden, NotFound
from app.models.course import Course
from app.models.game import Game
from app.models.instructor import ADMIN_INSTRUCTOR_ID
from app.models.player import Group
from app.repositories.course_repository import get_course_by_id
from app.repositories.game_repository import get_game_by_id
from app.repositories.player_repository import get_group_by_id
from app.services.ownership_service import ResourceType, is_authorized

logger = logging.getLogger(__name__)


async def _authorize(
    db: AsyncSession,
    instructor_id: int,
    resource_type: ResourceType,
    resource_id: int,
    owner: bool,
) -> None:
    if await is_authorized(db, instructor_id, resource_type, resource_id, require_owner=owner):
        return
    logger.warning(
        "instructor %s denied %s access to %s %s",
        instructor_id, "owner" if owner else "member", resource_type.value, resource_id,
    )
    role = "an owner" if owner else "an instructor"
    raise Forbidden(f"Instructor {instructor_id} is not {role} of {resource_type.value} {resource_id}")


async def require_game_access(db: AsyncSession, instructor_id: int, game_id: int, *, owner: bool = False) -> Game:
    game = await get_game_by_id(db, game_id)
    if game is None:
        raise NotFound(f"Game with ID {game_id} not found")
    await _authorize(db, instructor_id, ResourceType.GAME, game_id, owner)
    return game


async def require_course_access(db: AsyncSession, instructor_id: int, course_id: int, *, owner: bool = False) -> Course:
    course = await get_course_by_id(db, course_id)
    if course is None:
        raise NotFound(f"Course with ID {course_id} not found")
    await _authorize(db, instructor_id, ResourceType.COURSE, course_id, owner)
    return course


async def require_group_access(db: AsyncSession, instructor_id: int, group_id: int, *, owner: bool = False) -> Group:
    group = await get_group_by_id(db, group_id)
    if group is None:
        raise NotFound(f"Group with ID {group_id} not found")
    await _authorize(db, instructor_id, ResourceType.GROUP, group_id, owner)
    return group


def require_admin(instructor_id: int) -> None:
    if instructor_id != ADMIN_INSTRUCTOR_ID:
        logger.warning("instructor %s attempted an administrator-only operation", instructor_id)
        raise Forbidden("Only the administrator may perform this operation")
