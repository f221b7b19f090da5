"""
提交评分：判定是否答对、是否首次答对，推进进度并发放奖励。

整个 grade 调用是一个事务：任一步失败全部回滚。首次答对由部分唯一索引
uq_submissions_first_solution 在并发下兜底，先查询再插入只是常规路径。
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import is_unique_violation, transaction
from app.core.errors import Internal, NotFound, Unprocessable
from app.models.reward import Reward
from app.models.submission import CORRECT_THRESHOLD, RESULT_QUANTUM
from app.repositories.course_repository import get_exercise_course_id
from app.repositories.game_repository import get_game_by_id
from app.repositories.player_repository import get_registration, increment_progress, insert_unlock_if_absent
from app.repositories.reward_repository import create_player_reward, get_rewards_by_ids
from app.repositories.submission_repository import has_correct_submission, insert_submission

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GradeOutcome:
    first_solution: bool
    submission_id: int


@dataclass
class SubmissionDetails:
    """评分规则不关心、原样保存的提交内容。"""
    client: str = ""
    submitted_code: str = ""
    metrics: Any = None
    result_description: Any = None
    feedback: str = ""
    entered_at: datetime | None = None


def stored_result(result: Decimal) -> Decimal:
    """提交分数按 result 列精度舍入后的值，判分与落库都用它。"""
    return Decimal(result).quantize(RESULT_QUANTUM, rounding=ROUND_HALF_UP)


def is_correct(result: Decimal) -> bool:
    return stored_result(result) > CORRECT_THRESHOLD


def _validate_rewards(reward_ids: list[int], found: dict[int, Reward], course_id: int) -> list[Reward]:
    rewards = []
    for reward_id in reward_ids:
        reward = found.get(reward_id)
        if reward is None:
            raise NotFound(f"Reward with ID {reward_id} not found")
        if reward.course_id != course_id:
            raise Unprocessable(f"Reward {reward_id} does not belong to course {course_id}")
        if reward.valid_period is None:
            raise Internal(f"Reward {reward_id} has no validity period")
        rewards.append(reward)
    return rewards


async def _insert_submission(db: AsyncSession, first_solution: bool, **fields):
    """首次答对的插入放在 savepoint 中；撞上部分唯一索引说明并发请求已抢先，改记为非首次。"""
    if not first_solution:
        return await insert_submission(db, first_solution=False, **fields), False
    try:
        async with db.begin_nested():
            submission = await insert_submission(db, first_solution=True, **fields)
        return submission, True
    except IntegrityError as e:
        if not is_unique_violation(e):
            raise
        logger.info(
            "concurrent first solution for player %s exercise %s, recording as resubmission",
            fields["player_id"], fields["exercise_id"],
        )
        return await insert_submission(db, first_solution=False, **fields), False


async def grade(
    db: AsyncSession,
    player_id: int,
    game_id: int,
    exercise_id: int,
    result: Decimal,
    earned_rewards: list[int],
    details: SubmissionDetails | None = None,
) -> GradeOutcome:
    details = details or SubmissionDetails()
    result = stored_result(result)
    now = datetime.now(timezone.utc)

    async with transaction(db):
        registration = await get_registration(db, player_id, game_id)
        if registration is None:
            raise NotFound(f"Player {player_id} is not registered in game {game_id}")
        game = await get_game_by_id(db, game_id)
        if game is None:
            raise NotFound(f"Game with ID {game_id} not found")

        exercise_course_id = await get_exercise_course_id(db, exercise_id)
        if exercise_course_id is None:
            raise NotFound(f"Exercise with ID {exercise_id} not found")
        if exercise_course_id != game.course_id:
            raise Unprocessable(f"Exercise {exercise_id} does not belong to the course of game {game_id}")

        found = await get_rewards_by_ids(db, earned_rewards)
        grants = [
            (reward.id, reward.valid_period)
            for reward in _validate_rewards(earned_rewards, found, game.course_id)
        ]
        has_lock_policy = game.module_lock > 0 or bool(game.exercise_lock)

        correct = is_correct(result)
        first_candidate = correct and not await has_correct_submission(db, player_id, game_id, exercise_id)
        submission, first_solution = await _insert_submission(
            db,
            first_candidate,
            player_id=player_id,
            game_id=game_id,
            exercise_id=exercise_id,
            client=details.client,
            submitted_code=details.submitted_code,
            metrics=details.metrics if details.metrics is not None else {},
            result=result,
            result_description=details.result_description if details.result_description is not None else {},
            feedback=details.feedback,
            earned_rewards=list(earned_rewards),
            entered_at=details.entered_at or now,
        )

        if first_solution:
            updated = await increment_progress(db, player_id, game_id)
            if updated != 1:
                raise Internal(f"Progress update affected {updated} rows for player {player_id} in game {game_id}")
            if has_lock_policy:
                await insert_unlock_if_absent(db, player_id, exercise_id)

        for reward_id, valid_period in grants:
            await create_player_reward(
                db,
                player_id=player_id,
                reward_id=reward_id,
                game_id=game_id,
                obtained_at=now,
                expires_at=now + valid_period,
            )
        submission_id = submission.id

    logger.info(
        "graded submission %s: player=%s game=%s exercise=%s correct=%s first=%s rewards=%d",
        submission_id, player_id, game_id, exercise_id, correct, first_solution, len(grants),
    )
    return GradeOutcome(first_solution=first_solution, submission_id=submission_id)
