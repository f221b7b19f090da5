"""课程（Course）、模块（Module）、题目（Exercise）数据访问层。"""
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.course import Course, Exercise, Module


async def get_course_by_id(db: AsyncSession, course_id: int) -> Course | None:
    """按 ID 查询课程，不存在返回 None。"""
    return await db.get(Course, course_id)


async def get_module_by_id(db: AsyncSession, module_id: int) -> Module | None:
    """按 ID 查询模块，不存在返回 None。"""
    return await db.get(Module, module_id)


async def get_exercise_by_id(db: AsyncSession, exercise_id: int) -> Exercise | None:
    """按 ID 查询题目，不存在返回 None。"""
    return await db.get(Exercise, exercise_id)


async def get_exercise_course_id(db: AsyncSession, exercise_id: int) -> int | None:
    """题目所属课程 ID（经由模块），题目不存在返回 None。"""
    result = await db.execute(
        select(Module.course_id)
        .join(Exercise, Exercise.module_id == Module.id)
        .where(Exercise.id == exercise_id)
    )
    return result.scalar_one_or_none()


async def list_module_ids(db: AsyncSession, course_id: int, language: str) -> list[int]:
    """某课程下指定语言的模块 ID，按 order 升序。"""
    result = await db.execute(
        select(Module.id)
        .where(Module.course_id == course_id, Module.language == language)
        .order_by(Module.order.asc(), Module.id.asc())
    )
    return list(result.scalars().all())


async def list_exercise_ids(
    db: AsyncSession,
    module_id: int,
    *,
    language: str,
    programming_language: str,
) -> list[int]:
    """某模块下指定语言与编程语言的题目 ID，按 order 升序。"""
    result = await db.execute(
        select(Exercise.id)
        .where(
            Exercise.module_id == module_id,
            Exercise.language == language,
            Exercise.programming_language == programming_language,
        )
        .order_by(Exercise.order.asc(), Exercise.id.asc())
    )
    return list(result.scalars().all())


async def count_course_exercises(db: AsyncSession, course_id: int, programming_language: str) -> int:
    """课程下某编程语言的题目总数，作为新游戏的 total_exercises。"""
    result = await db.execute(
        select(func.count(Exercise.id))
        .join(Module, Exercise.module_id == Module.id)
        .where(Module.course_id == course_id, Exercise.programming_language == programming_language)
    )
    return result.scalar_one() or 0


async def get_previous_module(db: AsyncSession, module: Module) -> Module | None:
    """同课程、同语言中 order 紧邻的上一个模块；已是第一个模块时返回 None。"""
    result = await db.execute(
        select(Module)
        .where(
            Module.course_id == module.course_id,
            Module.language == module.language,
            Module.order < module.order,
        )
        .order_by(Module.order.desc(), Module.id.desc())
        .limit(1)
    )
    return result.scalars().first()


async def list_module_exercise_ids_for(db: AsyncSession, module_id: int, programming_language: str) -> list[int]:
    """模块中某编程语言的全部题目 ID（不区分自然语言）。"""
    result = await db.execute(
        select(Exercise.id).where(
            Exercise.module_id == module_id,
            Exercise.programming_language == programming_language,
        )
    )
    return list(result.scalars().all())


async def get_previous_exercise_id(db: AsyncSession, exercise: Exercise) -> int | None:
    """同模块、同语言、同编程语言中 order 紧邻的上一题；已是第一题时返回 None。"""
    result = await db.execute(
        select(Exercise.id)
        .where(
            Exercise.module_id == exercise.module_id,
            Exercise.language == exercise.language,
            Exercise.programming_language == exercise.programming_language,
            Exercise.order < exercise.order,
        )
        .order_by(Exercise.order.desc(), Exercise.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()
