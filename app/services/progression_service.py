"""
题目对玩家的可见 / 锁定状态与进度百分比。

状态计算是纯函数 compute_exercise_status，输入是一次性加载的只读快照 ExerciseSnapshot；
load_exercise_snapshot 负责从数据库组装快照。本模块只读，不修改 progress。
"""
import math
from dataclasses import dataclass
from fractions import Fraction

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFound
from app.models.course import Exercise
from app.models.game import Game
from app.repositories.course_repository import (
    get_exercise_by_id,
    get_module_by_id,
    get_previous_exercise_id,
    get_previous_module,
    list_module_exercise_ids_for,
)
from app.repositories.game_repository import get_game_by_id
from app.repositories.player_repository import has_unlock
from app.repositories.submission_repository import list_solved_exercise_ids


@dataclass(frozen=True)
class ExerciseStatus:
    hidden: bool
    locked: bool


@dataclass(frozen=True)
class ExerciseSnapshot:
    hidden: bool
    unlocked: bool
    module_lock: float
    exercise_lock: bool
    # 上一模块中本游戏编程语言的题目 ID；None 表示是第一个模块
    previous_module_exercises: frozenset[int] | None
    # 同模块上一题 ID；None 表示是模块第一题
    previous_exercise_id: int | None
    solved: frozenset[int]


def compute_exercise_status(snapshot: ExerciseSnapshot) -> ExerciseStatus:
    """显式解锁优先；否则依次检查模块门槛与顺序门槛。作者设定的 locked 基线不参与计算。"""
    if snapshot.unlocked:
        return ExerciseStatus(hidden=snapshot.hidden, locked=False)

    if snapshot.module_lock > 0 and snapshot.previous_module_exercises is not None:
        # 按十进制字面值精确计算：0.28 * 25 要求 7 题而不是 8 题
        required = math.ceil(Fraction(str(snapshot.module_lock)) * len(snapshot.previous_module_exercises))
        solved_prev = len(snapshot.previous_module_exercises & snapshot.solved)
        if solved_prev < required:
            return ExerciseStatus(hidden=snapshot.hidden, locked=True)

    if snapshot.exercise_lock and snapshot.previous_exercise_id is not None:
        if snapshot.previous_exercise_id not in snapshot.solved:
            return ExerciseStatus(hidden=snapshot.hidden, locked=True)

    return ExerciseStatus(hidden=snapshot.hidden, locked=False)


def progress_percentage(progress: int, total_exercises: int) -> float:
    if total_exercises <= 0:
        return 0.0
    return min(100.0, progress / total_exercises * 100)


async def load_exercise_snapshot(
    db: AsyncSession,
    player_id: int,
    game: Game,
    exercise: Exercise,
) -> ExerciseSnapshot:
    unlocked = await has_unlock(db, player_id, exercise.id)
    solved = frozenset(await list_solved_exercise_ids(db, player_id, game.id))

    previous_module_exercises = None
    if game.module_lock > 0:
        module = await get_module_by_id(db, exercise.module_id)
        previous = await get_previous_module(db, module) if module is not None else None
        if previous is not None:
            previous_module_exercises = frozenset(
                await list_module_exercise_ids_for(db, previous.id, game.programming_language)
            )

    previous_exercise_id = None
    if game.exercise_lock:
        previous_exercise_id = await get_previous_exercise_id(db, exercise)

    return ExerciseSnapshot(
        hidden=bool(exercise.hidden),
        unlocked=unlocked,
        module_lock=float(game.module_lock),
        exercise_lock=bool(game.exercise_lock),
        previous_module_exercises=previous_module_exercises,
        previous_exercise_id=previous_exercise_id,
        solved=solved,
    )


async def exercise_status(db: AsyncSession, player_id: int, game_id: int, exercise_id: int) -> ExerciseStatus:
    """玩家在某游戏中看到的题目状态；游戏或题目不存在抛 NotFound。"""
    game = await get_game_by_id(db, game_id)
    if game is None:
        raise NotFound(f"Game with ID {game_id} not found")
    exercise = await get_exercise_by_id(db, exercise_id)
    if exercise is None:
        raise NotFound(f"Exercise with ID {exercise_id} not found")
    snapshot = await load_exercise_snapshot(db, player_id, game, exercise)
    return compute_exercise_status(snapshot)
