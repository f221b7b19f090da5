import pytest
from sqlalchemy.exc import OperationalError

from app.services import ownership_service
from app.services.ownership_service import ResourceType, Role, is_authorized, resolve_role

pytestmark = pytest.mark.anyio


def test_role_allows():
    assert not Role.NONE.allows(False)
    assert Role.MEMBER.allows(False)
    assert not Role.MEMBER.allows(True)
    assert Role.OWNER.allows(True)
    assert Role.ADMIN.allows(True)


@pytest.mark.parametrize("resource_type", list(ResourceType))
@pytest.mark.parametrize("require_owner", [False, True])
async def test_admin_is_authorized_without_ownership_rows(db, resource_type, require_owner):
    assert await is_authorized(db, 0, resource_type, 12345, require_owner)


async def test_missing_edge_denies(db, seed):
    course = await seed.course()
    game = await seed.game(course)
    teacher = await seed.instructor()
    assert await resolve_role(db, teacher.id, ResourceType.GAME, game.id) is Role.NONE
    assert not await is_authorized(db, teacher.id, ResourceType.GAME, game.id)


async def test_member_edge_allows_only_non_owner_actions(db, seed):
    course = await seed.course()
    game = await seed.game(course)
    teacher = await seed.instructor()
    await seed.game_edge(game, teacher, owner=False)

    assert await resolve_role(db, teacher.id, ResourceType.GAME, game.id) is Role.MEMBER
    assert await is_authorized(db, teacher.id, ResourceType.GAME, game.id, require_owner=False)
    assert not await is_authorized(db, teacher.id, ResourceType.GAME, game.id, require_owner=True)


async def test_owner_edge_allows_owner_actions(db, seed):
    group = await seed.group()
    teacher = await seed.instructor()
    await seed.group_edge(group, teacher, owner=True)
    assert await is_authorized(db, teacher.id, ResourceType.GROUP, group.id, require_owner=True)


async def test_game_ownership_does_not_leak_to_other_games(db, seed):
    course = await seed.course()
    mine, other = await seed.game(course), await seed.game(course)
    teacher = await seed.instructor()
    await seed.game_edge(mine, teacher, owner=True)
    assert not await is_authorized(db, teacher.id, ResourceType.GAME, other.id)


async def test_exercise_and_module_resolve_through_course(db, seed):
    course = await seed.course()
    module = await seed.module(course, 1)
    exercise = await seed.exercise(module, 1)
    member, stranger = await seed.instructor(), await seed.instructor()
    await seed.course_edge(course, member, owner=False)

    assert await is_authorized(db, member.id, ResourceType.EXERCISE, exercise.id)
    assert await is_authorized(db, member.id, ResourceType.MODULE, module.id)
    assert not await is_authorized(db, member.id, ResourceType.EXERCISE, exercise.id, require_owner=True)
    assert not await is_authorized(db, stranger.id, ResourceType.EXERCISE, exercise.id)


async def test_unknown_exercise_denies(db, seed):
    teacher = await seed.instructor()
    assert await resolve_role(db, teacher.id, ResourceType.EXERCISE, 999) is Role.NONE


async def test_lookup_failure_fails_closed(db, seed, monkeypatch, caplog):
    async def broken_lookup(db, resource_id, instructor_id):
        raise OperationalError("SELECT", {}, Exception("connection lost"))

    monkeypatch.setitem(ownership_service._DIRECT_LOOKUPS, ResourceType.GAME, broken_lookup)
    teacher = await seed.instructor()

    assert await resolve_role(db, teacher.id, ResourceType.GAME, 1) is Role.NONE
    assert "ownership lookup failed" in caplog.text
