"""游戏（Game）数据访问层。"""
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.game import Game
from app.models.instructor import GameOwnership
from app.models.player import PlayerRegistration


async def get_game_by_id(db: AsyncSession, game_id: int) -> Game | None:
    """按 ID 查询游戏，不存在返回 None。"""
    return await db.get(Game, game_id)


async def list_available_game_ids(db: AsyncSession) -> list[int]:
    """公开且已激活的游戏 ID。"""
    result = await db.execute(
        select(Game.id).where(Game.active.is_(True), Game.public.is_(True)).order_by(Game.id.asc())
    )
    return list(result.scalars().all())


async def list_game_ids_for_instructor(db: AsyncSession, instructor_id: int) -> list[int]:
    """某教师有 ownership 记录的游戏 ID。"""
    result = await db.execute(
        select(GameOwnership.game_id)
        .where(GameOwnership.instructor_id == instructor_id)
        .order_by(GameOwnership.game_id.asc())
    )
    return list(result.scalars().all())


async def list_all_game_ids(db: AsyncSession) -> list[int]:
    result = await db.execute(select(Game.id).order_by(Game.id.asc()))
    return list(result.scalars().all())


async def count_game_players(db: AsyncSession, game_id: int) -> int:
    """游戏的报名人数（含已离开）。"""
    result = await db.execute(
        select(func.count(PlayerRegistration.id)).where(PlayerRegistration.game_id == game_id)
    )
    return result.scalar_one() or 0


async def create_game(
    db: AsyncSession,
    *,
    title: str,
    public: bool,
    active: bool,
    description: str,
    course_id: int,
    programming_language: str,
    module_lock: float,
    exercise_lock: bool,
    total_exercises: int,
    start_date: datetime,
    end_date: datetime,
) -> Game:
    """创建游戏记录（只 flush，事务由调用方提交）。"""
    game = Game(
        title=title,
        public=public,
        active=active,
        description=description,
        course_id=course_id,
        programming_language=programming_language,
        module_lock=module_lock,
        exercise_lock=exercise_lock,
        total_exercises=total_exercises,
        start_date=start_date,
        end_date=end_date,
    )
    db.add(game)
    await db.flush()
    return game


async def update_game(db: AsyncSession, game_id: int, **values) -> int:
    """按字段更新游戏，返回受影响行数。"""
    if not values:
        return 0
    result = await db.execute(update(Game).where(Game.id == game_id).values(**values))
    return result.rowcount
