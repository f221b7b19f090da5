"""邀请链接（Invite）数据访问层。"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.invite import Invite


async def get_invite_by_uuid(db: AsyncSession, invite_uuid: str) -> Invite | None:
    result = await db.execute(select(Invite).where(Invite.uuid == invite_uuid))
    return result.scalars().first()


async def create_invite(
    db: AsyncSession,
    *,
    invite_uuid: str,
    instructor_id: int,
    game_id: int | None,
    group_id: int | None,
) -> Invite:
    invite = Invite(uuid=invite_uuid, instructor_id=instructor_id, game_id=game_id, group_id=group_id)
    db.add(invite)
    await db.flush()
    return invite
