from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from app.core.errors import Internal, NotFound, Unprocessable
from app.models import PlayerReward, PlayerRegistration, PlayerUnlock, Submission
from app.repositories import submission_repository
from app.services import grading_service
from app.services.grading_service import SubmissionDetails, grade, is_correct

pytestmark = pytest.mark.anyio


async def _count(db, model, **filters) -> int:
    stmt = select(func.count()).select_from(model)
    for name, value in filters.items():
        stmt = stmt.where(getattr(model, name) == value)
    return (await db.execute(stmt)).scalar_one()


async def _progress(db, player, game) -> int:
    result = await db.execute(
        select(PlayerRegistration.progress).where(
            PlayerRegistration.player_id == player.id,
            PlayerRegistration.game_id == game.id,
        )
    )
    return result.scalar_one()


@pytest.fixture
async def world(seed):
    course = await seed.course()
    module = await seed.module(course, 1)
    exercise = await seed.exercise(module, 1)
    game = await seed.game(course, total_exercises=1)
    player = await seed.player()
    await seed.registration(player, game)
    return course, exercise, game, player


def test_threshold_is_strict():
    assert not is_correct(Decimal("50.0"))
    assert not is_correct(Decimal("50"))
    assert is_correct(Decimal("50.1"))
    assert not is_correct(Decimal("0"))
    assert is_correct(Decimal("100"))
    assert not is_correct(Decimal("50.004"))
    assert is_correct(Decimal("50.005"))


async def test_result_of_fifty_is_not_a_solution(db, world):
    _, exercise, game, player = world
    outcome = await grade(db, player.id, game.id, exercise.id, Decimal("50.0"), [])
    assert not outcome.first_solution
    assert await _progress(db, player, game) == 0
    assert await _count(db, Submission, player_id=player.id) == 1


async def test_first_correct_submission_advances_progress_once(db, world):
    _, exercise, game, player = world
    await grade(db, player.id, game.id, exercise.id, Decimal("20"), [])
    first = await grade(db, player.id, game.id, exercise.id, Decimal("50.1"), [])
    again = await grade(db, player.id, game.id, exercise.id, Decimal("100"), [])
    worse = await grade(db, player.id, game.id, exercise.id, Decimal("10"), [])

    assert first.first_solution
    assert not again.first_solution
    assert not worse.first_solution
    assert await _progress(db, player, game) == 1
    assert await _count(db, Submission, player_id=player.id) == 4
    assert await _count(db, Submission, player_id=player.id, first_solution=True) == 1


async def test_details_are_stored_verbatim(db, world):
    _, exercise, game, player = world
    details = SubmissionDetails(
        client="web", submitted_code="print(1)", metrics={"loc": 1}, feedback="well done"
    )
    outcome = await grade(db, player.id, game.id, exercise.id, Decimal("75"), [], details)
    submission = await db.get(Submission, outcome.submission_id)
    assert submission.client == "web"
    assert submission.submitted_code == "print(1)"
    assert submission.metrics == {"loc": 1}
    assert submission.earned_rewards == []


async def test_rewards_are_minted_on_every_declaring_submission(db, seed, world):
    course, exercise, game, player = world
    reward = await seed.reward(course, valid_period=timedelta(days=7))

    await grade(db, player.id, game.id, exercise.id, Decimal("90"), [reward.id])
    await grade(db, player.id, game.id, exercise.id, Decimal("95"), [reward.id])
    await grade(db, player.id, game.id, exercise.id, Decimal("99"), [])

    rows = (await db.execute(select(PlayerReward).where(PlayerReward.player_id == player.id))).scalars().all()
    assert len(rows) == 2
    for row in rows:
        assert row.count == 1
        assert row.used_count == 0
        assert row.game_id == game.id
        assert row.expires_at - row.obtained_at == timedelta(days=7)
    assert await _progress(db, player, game) == 1


async def test_unknown_reward_fails_whole_call(db, world):
    _, exercise, game, player = world
    with pytest.raises(NotFound):
        await grade(db, player.id, game.id, exercise.id, Decimal("90"), [424242])
    assert await _count(db, Submission) == 0
    assert await _count(db, PlayerReward) == 0
    assert await _progress(db, player, game) == 0


async def test_reward_from_another_course_is_unprocessable(db, seed, world):
    _, exercise, game, player = world
    foreign = await seed.reward(await seed.course())
    with pytest.raises(Unprocessable):
        await grade(db, player.id, game.id, exercise.id, Decimal("90"), [foreign.id])
    assert await _count(db, Submission) == 0


async def test_reward_without_validity_period_is_internal(db, seed, world):
    course, exercise, game, player = world
    broken = await seed.reward(course, valid_period=None)
    with pytest.raises(Internal):
        await grade(db, player.id, game.id, exercise.id, Decimal("90"), [broken.id])
    assert await _progress(db, player, game) == 0


async def test_missing_registration_is_not_found(db, seed, world):
    _, exercise, game, _ = world
    outsider = await seed.player()
    with pytest.raises(NotFound):
        await grade(db, outsider.id, game.id, exercise.id, Decimal("90"), [])


async def test_exercise_from_another_course_is_unprocessable(db, seed, world):
    _, _, game, player = world
    other_course = await seed.course()
    stray = await seed.exercise(await seed.module(other_course, 1), 1)
    with pytest.raises(Unprocessable):
        await grade(db, player.id, game.id, stray.id, Decimal("90"), [])


async def test_first_solution_records_unlock_when_game_has_lock_policy(db, seed):
    course = await seed.course()
    module = await seed.module(course, 1)
    exercise = await seed.exercise(module, 1)
    locked_game, open_game = await seed.game(course, exercise_lock=True), await seed.game(course)
    player = await seed.player()
    await seed.registration(player, locked_game)
    await seed.registration(player, open_game)

    await grade(db, player.id, open_game.id, exercise.id, Decimal("90"), [])
    assert await _count(db, PlayerUnlock, player_id=player.id) == 0

    await grade(db, player.id, locked_game.id, exercise.id, Decimal("90"), [])
    await grade(db, player.id, locked_game.id, exercise.id, Decimal("90"), [])
    assert await _count(db, PlayerUnlock, player_id=player.id) == 1


async def test_progress_is_per_game(db, seed):
    course = await seed.course()
    exercise = await seed.exercise(await seed.module(course, 1), 1)
    g1, g2 = await seed.game(course), await seed.game(course)
    player = await seed.player()
    await seed.registration(player, g1)
    await seed.registration(player, g2)

    assert (await grade(db, player.id, g1.id, exercise.id, Decimal("90"), [])).first_solution
    assert (await grade(db, player.id, g2.id, exercise.id, Decimal("90"), [])).first_solution
    assert await _progress(db, player, g1) == 1
    assert await _progress(db, player, g2) == 1


async def test_racing_first_solution_is_settled_by_unique_index(db, world, monkeypatch):
    _, exercise, game, player = world
    assert (await grade(db, player.id, game.id, exercise.id, Decimal("90"), [])).first_solution

    # 模拟并发：另一请求在本请求查询之后抢先写入了首次答对
    async def stale_check(*args, **kwargs):
        return False

    monkeypatch.setattr(grading_service, "has_correct_submission", stale_check)
    outcome = await grade(db, player.id, game.id, exercise.id, Decimal("90"), [])

    assert not outcome.first_solution
    assert await _progress(db, player, game) == 1
    assert await _count(db, Submission, player_id=player.id) == 2
    assert await _count(db, Submission, player_id=player.id, first_solution=True) == 1


async def test_result_is_graded_at_stored_precision(db, world):
    _, exercise, game, player = world

    outcome = await grade(db, player.id, game.id, exercise.id, Decimal("50.004"), [])
    assert not outcome.first_solution
    assert await _progress(db, player, game) == 0
    stored = (await db.execute(select(Submission.result).where(Submission.id == outcome.submission_id))).scalar_one()
    assert stored == Decimal("50.00")
    assert await submission_repository.list_solved_exercise_ids(db, player.id, game.id) == set()

    outcome = await grade(db, player.id, game.id, exercise.id, Decimal("50.005"), [])
    assert outcome.first_solution
    assert await _progress(db, player, game) == 1
    stored = (await db.execute(select(Submission.result).where(Submission.id == outcome.submission_id))).scalar_one()
    assert stored == Decimal("50.01")
    assert await submission_repository.list_solved_exercise_ids(db, player.id, game.id) == {exercise.id}
