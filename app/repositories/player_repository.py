"""玩家（Player）、报名（PlayerRegistration）、小组（Group）与解锁（PlayerUnlock）数据访问层。"""
from datetime import datetime, timezone

from sqlalchemy import delete, exists, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import is_unique_violation
from app.models.game import Game
from app.models.player import Group, Player, PlayerGroup, PlayerRegistration, PlayerUnlock
from app.models.reward import PlayerReward
from app.models.submission import Submission


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ----- Player -----
async def get_player_by_id(db: AsyncSession, player_id: int) -> Player | None:
    """按 ID 查询玩家，不存在返回 None。"""
    return await db.get(Player, player_id)


async def get_player_by_email(db: AsyncSession, email: str) -> Player | None:
    result = await db.execute(select(Player).where(Player.email == email))
    return result.scalars().first()


async def create_player(
    db: AsyncSession,
    *,
    email: str,
    display_name: str,
    display_avatar: str | None = None,
) -> Player:
    player = Player(email=email, display_name=display_name, display_avatar=display_avatar)
    db.add(player)
    await db.flush()
    return player


async def set_player_disabled(db: AsyncSession, player_id: int) -> int:
    result = await db.execute(update(Player).where(Player.id == player_id).values(disabled=True))
    return result.rowcount


async def delete_player_cascade(db: AsyncSession, player_id: int) -> int:
    """删除玩家及其全部提交、报名、小组关系、奖励与解锁记录，返回删除的玩家行数。"""
    for model in (Submission, PlayerRegistration, PlayerGroup, PlayerReward, PlayerUnlock):
        await db.execute(delete(model).where(model.player_id == player_id))
    result = await db.execute(delete(Player).where(Player.id == player_id))
    return result.rowcount


# ----- PlayerRegistration -----
async def get_registration_by_id(db: AsyncSession, registration_id: int) -> PlayerRegistration | None:
    return await db.get(PlayerRegistration, registration_id)


async def get_registration(db: AsyncSession, player_id: int, game_id: int) -> PlayerRegistration | None:
    """按 (player, game) 查询报名记录。"""
    result = await db.execute(
        select(PlayerRegistration).where(
            PlayerRegistration.player_id == player_id,
            PlayerRegistration.game_id == game_id,
        )
    )
    return result.scalars().first()


async def insert_registration(
    db: AsyncSession,
    *,
    player_id: int,
    game_id: int,
    language: str,
) -> PlayerRegistration:
    """插入报名记录；(player_id, game_id) 已存在时由数据库抛出唯一约束冲突。"""
    registration = PlayerRegistration(
        player_id=player_id,
        game_id=game_id,
        language=language,
        progress=0,
        game_state={},
    )
    db.add(registration)
    await db.flush()
    return registration


async def list_registration_ids(db: AsyncSession, player_id: int, *, only_active: bool) -> list[int]:
    """玩家的报名 ID；only_active 时只保留未离开且游戏已激活的记录。"""
    q = select(PlayerRegistration.id).where(PlayerRegistration.player_id == player_id)
    if only_active:
        q = q.join(Game, Game.id == PlayerRegistration.game_id).where(
            PlayerRegistration.left_at.is_(None),
            Game.active.is_(True),
        )
    result = await db.execute(q.order_by(PlayerRegistration.id.asc()))
    return list(result.scalars().all())


async def list_game_player_ids(
    db: AsyncSession,
    game_id: int,
    *,
    group_id: int | None = None,
    only_active: bool = False,
) -> list[int]:
    """游戏中的玩家 ID，可按小组筛选；only_active 时排除已停用的玩家。"""
    q = (
        select(PlayerRegistration.player_id)
        .join(Player, Player.id == PlayerRegistration.player_id)
        .where(PlayerRegistration.game_id == game_id)
    )
    if only_active:
        q = q.where(Player.disabled.is_(False))
    if group_id is not None:
        q = q.join(PlayerGroup, PlayerGroup.player_id == PlayerRegistration.player_id).where(
            PlayerGroup.group_id == group_id
        )
    result = await db.execute(q.order_by(PlayerRegistration.player_id.asc()))
    return list(result.scalars().all())


async def delete_registration(db: AsyncSession, player_id: int, game_id: int) -> int:
    result = await db.execute(
        delete(PlayerRegistration).where(
            PlayerRegistration.player_id == player_id,
            PlayerRegistration.game_id == game_id,
        )
    )
    return result.rowcount


async def save_game_state(db: AsyncSession, registration_id: int, game_state) -> int:
    result = await db.execute(
        update(PlayerRegistration)
        .where(PlayerRegistration.id == registration_id)
        .values(game_state=game_state, saved_at=_now())
    )
    return result.rowcount


async def mark_registration_left(db: AsyncSession, player_id: int, game_id: int) -> int:
    """将仍在进行中的报名标记为已离开，返回受影响行数。"""
    result = await db.execute(
        update(PlayerRegistration)
        .where(
            PlayerRegistration.player_id == player_id,
            PlayerRegistration.game_id == game_id,
            PlayerRegistration.left_at.is_(None),
        )
        .values(left_at=_now())
    )
    return result.rowcount


async def set_registration_language(db: AsyncSession, player_id: int, game_id: int, language: str) -> int:
    result = await db.execute(
        update(PlayerRegistration)
        .where(PlayerRegistration.player_id == player_id, PlayerRegistration.game_id == game_id)
        .values(language=language)
    )
    return result.rowcount


async def increment_progress(db: AsyncSession, player_id: int, game_id: int) -> int:
    """报名记录 progress 原子加一，返回受影响行数。"""
    result = await db.execute(
        update(PlayerRegistration)
        .where(PlayerRegistration.player_id == player_id, PlayerRegistration.game_id == game_id)
        .values(progress=PlayerRegistration.progress + 1)
    )
    return result.rowcount


# ----- Group -----
async def get_group_by_id(db: AsyncSession, group_id: int) -> Group | None:
    return await db.get(Group, group_id)


async def create_group(db: AsyncSession, *, display_name: str, display_avatar: str | None = None) -> Group:
    """插入小组；display_name 重复时由数据库抛出唯一约束冲突。"""
    group = Group(display_name=display_name, display_avatar=display_avatar)
    db.add(group)
    await db.flush()
    return group


async def delete_group(db: AsyncSession, group_id: int) -> int:
    result = await db.execute(delete(Group).where(Group.id == group_id))
    return result.rowcount


async def insert_group_member(db: AsyncSession, player_id: int, group_id: int) -> None:
    """插入小组成员关系；已是成员时由主键冲突抛出。"""
    await db.execute(insert(PlayerGroup).values(player_id=player_id, group_id=group_id))


async def remove_group_member(db: AsyncSession, player_id: int, group_id: int) -> int:
    result = await db.execute(
        delete(PlayerGroup).where(PlayerGroup.player_id == player_id, PlayerGroup.group_id == group_id)
    )
    return result.rowcount


async def clear_group_members(db: AsyncSession, group_id: int) -> None:
    await db.execute(delete(PlayerGroup).where(PlayerGroup.group_id == group_id))


# ----- PlayerUnlock -----
async def has_unlock(db: AsyncSession, player_id: int, exercise_id: int) -> bool:
    result = await db.execute(
        select(
            exists().where(
                PlayerUnlock.player_id == player_id,
                PlayerUnlock.exercise_id == exercise_id,
            )
        )
    )
    return bool(result.scalar())


async def insert_unlock_if_absent(db: AsyncSession, player_id: int, exercise_id: int) -> bool:
    """插入解锁记录，已存在时不做任何事。返回是否新插入。"""
    try:
        async with db.begin_nested():
            await db.execute(insert(PlayerUnlock).values(player_id=player_id, exercise_id=exercise_id))
    except IntegrityError as e:
        if not is_unique_violation(e):
            raise
        return False
    return True
