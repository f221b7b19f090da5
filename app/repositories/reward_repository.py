"""奖励（Reward）与玩家奖励（PlayerReward）数据访问层。"""
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.reward import PlayerReward, Reward


async def get_rewards_by_ids(db: AsyncSession, reward_ids: list[int]) -> dict[int, Reward]:
    """批量查询奖励，返回 {reward_id: Reward}，不存在的 ID 不出现在结果中。"""
    if not reward_ids:
        return {}
    result = await db.execute(select(Reward).where(Reward.id.in_(set(reward_ids))))
    return {r.id: r for r in result.scalars().all()}


async def create_player_reward(
    db: AsyncSession,
    *,
    player_id: int,
    reward_id: int,
    game_id: int | None,
    obtained_at: datetime,
    expires_at: datetime,
) -> PlayerReward:
    row = PlayerReward(
        player_id=player_id,
        reward_id=reward_id,
        game_id=game_id,
        count=1,
        used_count=0,
        obtained_at=obtained_at,
        expires_at=expires_at,
    )
    db.add(row)
    await db.flush()
    return row
