"""教师对游戏 / 课程 / 小组的权限判定。模块与题目没有自己的 ownership，沿用所属课程的。"""
import enum
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.instructor import ADMIN_INSTRUCTOR_ID
from app.repositories.course_repository import get_exercise_course_id, get_module_by_id
from app.repositories.ownership_repository import (
    get_course_ownership,
    get_game_ownership,
    get_group_ownership,
)

logger = logging.getLogger(__name__)


class ResourceType(str, enum.Enum):
    GAME = "game"
    COURSE = "course"
    GROUP = "group"
    MODULE = "module"
    EXERCISE = "exercise"


class Role(enum.IntEnum):
    """教师在某资源上的角色，数值越大权限越高。"""
    NONE = 0
    MEMBER = 1
    OWNER = 2
    ADMIN = 3

    def allows(self, require_owner: bool) -> bool:
        if self is Role.NONE:
            return False
        return not require_owner or self >= Role.OWNER


async def _module_course_id(db: AsyncSession, module_id: int) -> int | None:
    module = await get_module_by_id(db, module_id)
    return module.course_id if module is not None else None


_DIRECT_LOOKUPS = {
    ResourceType.GAME: get_game_ownership,
    ResourceType.COURSE: get_course_ownership,
    ResourceType.GROUP: get_group_ownership,
}
_COURSE_OF = {
    ResourceType.MODULE: _module_course_id,
    ResourceType.EXERCISE: get_exercise_course_id,
}


async def _lookup_edge(db: AsyncSession, instructor_id: int, resource_type: ResourceType, resource_id: int):
    if resource_type in _COURSE_OF:
        course_id = await _COURSE_OF[resource_type](db, resource_id)
        if course_id is None:
            return None
        return await get_course_ownership(db, course_id, instructor_id)
    return await _DIRECT_LOOKUPS[resource_type](db, resource_id, instructor_id)


async def resolve_role(
    db: AsyncSession,
    instructor_id: int,
    resource_type: ResourceType,
    resource_id: int,
) -> Role:
    """查 ownership 记录得到角色。管理员不查表；资源不存在或查询失败都按无权限处理。"""
    if instructor_id == ADMIN_INSTRUCTOR_ID:
        return Role.ADMIN
    try:
        edge = await _lookup_edge(db, instructor_id, resource_type, resource_id)
    except SQLAlchemyError as e:
        logger.warning(
            "ownership lookup failed for instructor %s on %s %s: %s",
            instructor_id, resource_type.value, resource_id, e,
        )
        return Role.NONE
    if edge is None:
        return Role.NONE
    return Role.OWNER if edge.owner else Role.MEMBER


async def is_authorized(
    db: AsyncSession,
    instructor_id: int,
    resource_type: ResourceType,
    resource_id: int,
    require_owner: bool = False,
) -> bool:
    role = await resolve_role(db, instructor_id, resource_type, resource_id)
    return role.allows(require_owner)
