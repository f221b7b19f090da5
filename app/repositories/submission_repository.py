"""提交记录（Submission）数据访问层。"答对"统一指 result > CORRECT_THRESHOLD。"""
from datetime import datetime
from decimal import Decimal

from sqlalchemy import distinct, exists, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.submission import CORRECT_THRESHOLD, Submission

_correct = Submission.result > CORRECT_THRESHOLD


async def get_submission_by_id(db: AsyncSession, submission_id: int) -> Submission | None:
    return await db.get(Submission, submission_id)


async def has_correct_submission(db: AsyncSession, player_id: int, game_id: int, exercise_id: int) -> bool:
    """该玩家在该游戏中是否已有这道题的正确提交。"""
    result = await db.execute(
        select(
            exists().where(
                Submission.player_id == player_id,
                Submission.game_id == game_id,
                Submission.exercise_id == exercise_id,
                _correct,
            )
        )
    )
    return bool(result.scalar())


async def insert_submission(
    db: AsyncSession,
    *,
    player_id: int,
    game_id: int,
    exercise_id: int,
    client: str,
    submitted_code: str,
    metrics,
    result: Decimal,
    result_description,
    first_solution: bool,
    feedback: str,
    earned_rewards: list[int],
    entered_at: datetime,
) -> Submission:
    submission = Submission(
        player_id=player_id,
        game_id=game_id,
        exercise_id=exercise_id,
        client=client,
        submitted_code=submitted_code,
        metrics=metrics,
        result=result,
        result_description=result_description,
        first_solution=first_solution,
        feedback=feedback,
        earned_rewards=earned_rewards,
        entered_at=entered_at,
    )
    db.add(submission)
    await db.flush()
    return submission


async def get_last_solution(db: AsyncSession, player_id: int, exercise_id: int) -> Submission | None:
    """最近一次正确提交；没有则取最近一次提交；都没有返回 None。"""
    base = (
        select(Submission)
        .where(Submission.player_id == player_id, Submission.exercise_id == exercise_id)
        .order_by(Submission.submitted_at.desc(), Submission.id.desc())
        .limit(1)
    )
    result = await db.execute(base.where(_correct))
    found = result.scalars().first()
    if found is not None:
        return found
    result = await db.execute(base)
    return result.scalars().first()


async def list_solved_exercise_ids(db: AsyncSession, player_id: int, game_id: int) -> set[int]:
    """玩家在游戏中答对过的题目 ID。"""
    result = await db.execute(
        select(distinct(Submission.exercise_id)).where(
            Submission.player_id == player_id,
            Submission.game_id == game_id,
            _correct,
        )
    )
    return set(result.scalars().all())


async def list_attempted_exercise_ids(db: AsyncSession, player_id: int, game_id: int) -> list[int]:
    result = await db.execute(
        select(distinct(Submission.exercise_id))
        .where(Submission.player_id == player_id, Submission.game_id == game_id)
        .order_by(Submission.exercise_id.asc())
    )
    return list(result.scalars().all())


async def count_player_attempts(db: AsyncSession, player_id: int, game_id: int) -> int:
    result = await db.execute(
        select(func.count(Submission.id)).where(
            Submission.player_id == player_id,
            Submission.game_id == game_id,
        )
    )
    return result.scalar_one() or 0


async def list_submission_ids(
    db: AsyncSession,
    game_id: int,
    *,
    player_id: int | None = None,
    exercise_id: int | None = None,
    success_only: bool = False,
) -> list[int]:
    """游戏内的提交 ID，按玩家或题目筛选，success_only 只保留正确提交。"""
    q = select(Submission.id).where(Submission.game_id == game_id)
    if player_id is not None:
        q = q.where(Submission.player_id == player_id)
    if exercise_id is not None:
        q = q.where(Submission.exercise_id == exercise_id)
    if success_only:
        q = q.where(_correct)
    result = await db.execute(q.order_by(Submission.submitted_at.asc(), Submission.id.asc()))
    return list(result.scalars().all())


async def get_exercise_counts(db: AsyncSession, game_id: int, exercise_id: int) -> tuple[int, int, int]:
    """某游戏中某题的 (提交次数, 正确次数, first_solution 次数)。"""
    result = await db.execute(
        select(
            func.count(Submission.id),
            func.count(Submission.id).filter(_correct),
            func.count(Submission.id).filter(Submission.first_solution.is_(True)),
        ).where(Submission.game_id == game_id, Submission.exercise_id == exercise_id)
    )
    attempts, successful, first = result.one()
    return attempts or 0, successful or 0, first or 0
