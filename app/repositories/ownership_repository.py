"""游戏 / 课程 / 小组与教师之间的 ownership 记录。"""
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.instructor import CourseOwnership, GameOwnership, GroupOwnership, Instructor


async def get_instructor_by_id(db: AsyncSession, instructor_id: int) -> Instructor | None:
    return await db.get(Instructor, instructor_id)


async def get_game_ownership(db: AsyncSession, game_id: int, instructor_id: int) -> GameOwnership | None:
    return await db.get(GameOwnership, (game_id, instructor_id))


async def get_course_ownership(db: AsyncSession, course_id: int, instructor_id: int) -> CourseOwnership | None:
    return await db.get(CourseOwnership, (course_id, instructor_id))


async def get_group_ownership(db: AsyncSession, group_id: int, instructor_id: int) -> GroupOwnership | None:
    return await db.get(GroupOwnership, (group_id, instructor_id))


async def add_game_ownership(db: AsyncSession, game_id: int, instructor_id: int, *, owner: bool) -> GameOwnership:
    row = GameOwnership(game_id=game_id, instructor_id=instructor_id, owner=owner)
    db.add(row)
    await db.flush()
    return row


async def add_group_ownership(db: AsyncSession, group_id: int, instructor_id: int, *, owner: bool) -> GroupOwnership:
    row = GroupOwnership(group_id=group_id, instructor_id=instructor_id, owner=owner)
    db.add(row)
    await db.flush()
    return row


async def remove_game_ownership(db: AsyncSession, game_id: int, instructor_id: int) -> int:
    """删除游戏的某个教师授权，返回删除行数。"""
    result = await db.execute(
        delete(GameOwnership).where(
            GameOwnership.game_id == game_id,
            GameOwnership.instructor_id == instructor_id,
        )
    )
    return result.rowcount


async def clear_group_ownership(db: AsyncSession, group_id: int) -> None:
    await db.execute(delete(GroupOwnership).where(GroupOwnership.group_id == group_id))
