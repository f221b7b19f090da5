"""邀请链接的生成与兑换。"""
import logging
import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.db import is_foreign_key_violation, is_unique_violation, transaction
from app.core.errors import NotFound
from app.repositories.invite_repository import create_invite, get_invite_by_uuid
from app.repositories.ownership_repository import get_instructor_by_id
from app.repositories.player_repository import insert_group_member, insert_registration
from app.services.access_service import require_game_access, require_group_access

logger = logging.getLogger(__name__)


async def _enroll_once(db: AsyncSession, insert, what: str) -> bool:
    """在 savepoint 中插入一条成员关系。已存在视为成功且不重复写；引用的玩家或资源不存在抛 NotFound。"""
    try:
        async with db.begin_nested():
            await insert()
    except IntegrityError as e:
        if is_unique_violation(e):
            return False
        if is_foreign_key_violation(e):
            raise NotFound(f"Player or {what} referenced by invite not found") from e
        raise
    return True


async def redeem(db: AsyncSession, player_id: int, invite_uuid: str) -> bool:
    """
    兑换邀请：invite 指向游戏则报名，指向小组则入组，两者都没有时什么也不做。
    邀请不会被标记为已使用，同一玩家重复兑换不会产生重复记录。
    """
    async with transaction(db):
        invite = await get_invite_by_uuid(db, invite_uuid)
        if invite is None:
            raise NotFound(f"Invite {invite_uuid} not found")
        game_id, group_id = invite.game_id, invite.group_id

        joined_game = joined_group = False
        if game_id is not None:
            joined_game = await _enroll_once(
                db,
                lambda: insert_registration(
                    db, player_id=player_id, game_id=game_id, language=settings.default_language
                ),
                "game",
            )
        if group_id is not None:
            joined_group = await _enroll_once(db, lambda: insert_group_member(db, player_id, group_id), "group")

    logger.info(
        "invite %s redeemed by player %s (new registration: %s, new membership: %s)",
        invite_uuid, player_id, joined_game, joined_group,
    )
    return True


async def generate(
    db: AsyncSession,
    instructor_id: int,
    game_id: int | None = None,
    group_id: int | None = None,
) -> str:
    """生成邀请链接 UUID；发起教师需对引用的游戏和小组都有访问权限。"""
    async with transaction(db):
        if await get_instructor_by_id(db, instructor_id) is None:
            raise NotFound(f"Instructor with ID {instructor_id} not found")
        if game_id is not None:
            await require_game_access(db, instructor_id, game_id)
        if group_id is not None:
            await require_group_access(db, instructor_id, group_id)
        invite_uuid = str(uuid.uuid4())
        await create_invite(
            db, invite_uuid=invite_uuid, instructor_id=instructor_id, game_id=game_id, group_id=group_id
        )
    logger.info("instructor %s generated invite %s (game=%s, group=%s)", instructor_id, invite_uuid, game_id, group_id)
    return invite_uuid
