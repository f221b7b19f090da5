import uuid

import pytest
from sqlalchemy import func, select

from app.core.errors import Forbidden, NotFound
from app.models import Invite, PlayerGroup, PlayerRegistration
from app.services import invite_service, student_service

pytestmark = pytest.mark.anyio


async def _registrations(db, player, game) -> int:
    result = await db.execute(
        select(func.count()).select_from(PlayerRegistration).where(
            PlayerRegistration.player_id == player.id,
            PlayerRegistration.game_id == game.id,
        )
    )
    return result.scalar_one()


async def _memberships(db, player, group) -> int:
    result = await db.execute(
        select(func.count()).select_from(PlayerGroup).where(
            PlayerGroup.player_id == player.id,
            PlayerGroup.group_id == group.id,
        )
    )
    return result.scalar_one()


@pytest.fixture
async def setting(seed):
    teacher = await seed.instructor()
    course = await seed.course()
    game = await seed.game(course)
    group = await seed.group()
    invite = await seed.invite(teacher, game=game, group=group)
    return teacher, game, group, invite


async def test_double_redeem_creates_each_row_once(db, seed, setting):
    _, game, group, invite = setting
    player = await seed.player()

    assert await invite_service.redeem(db, player.id, invite.uuid)
    assert await invite_service.redeem(db, player.id, invite.uuid)

    assert await _registrations(db, player, game) == 1
    assert await _memberships(db, player, group) == 1


async def test_invite_is_reusable_by_other_players(db, seed, setting):
    _, game, group, invite = setting
    alice, bob = await seed.player(), await seed.player()

    await invite_service.redeem(db, alice.id, invite.uuid)
    await invite_service.redeem(db, bob.id, invite.uuid)

    assert await _registrations(db, alice, game) == 1
    assert await _registrations(db, bob, game) == 1
    assert await _memberships(db, bob, group) == 1
    assert (await db.execute(select(func.count()).select_from(Invite))).scalar_one() == 1


async def test_redeem_uses_default_language(db, seed, setting):
    _, game, _, invite = setting
    player = await seed.player()
    await invite_service.redeem(db, player.id, invite.uuid)
    registration = (
        await db.execute(select(PlayerRegistration).where(PlayerRegistration.player_id == player.id))
    ).scalar_one()
    assert registration.language == "en"
    assert registration.progress == 0


async def test_existing_membership_is_kept_untouched(db, seed, setting):
    _, game, group, invite = setting
    player = await seed.player()
    await student_service.join_game(db, player.id, game.id, "pt")
    await student_service.leave_game(db, player.id, game.id)

    assert await invite_service.redeem(db, player.id, invite.uuid)

    registration = (
        await db.execute(select(PlayerRegistration).where(PlayerRegistration.player_id == player.id))
    ).scalar_one()
    await db.refresh(registration)
    assert registration.language == "pt"
    assert registration.left_at is not None
    assert await _memberships(db, player, group) == 1


async def test_unknown_uuid_is_not_found(db, seed):
    player = await seed.player()
    with pytest.raises(NotFound):
        await invite_service.redeem(db, player.id, str(uuid.uuid4()))


async def test_invite_without_targets_is_a_noop(db, seed):
    teacher = await seed.instructor()
    invite = await seed.invite(teacher)
    player = await seed.player()
    assert await invite_service.redeem(db, player.id, invite.uuid)
    assert (await db.execute(select(func.count()).select_from(PlayerRegistration))).scalar_one() == 0
    assert (await db.execute(select(func.count()).select_from(PlayerGroup))).scalar_one() == 0


async def test_unknown_player_is_not_found(db, setting):
    _, _, _, invite = setting
    with pytest.raises(NotFound):
        await invite_service.redeem(db, 987654, invite.uuid)


async def test_generate_requires_access_to_every_target(db, seed):
    teacher = await seed.instructor()
    course = await seed.course()
    game = await seed.game(course)
    group = await seed.group()
    await seed.game_edge(game, teacher, owner=False)

    invite_uuid = await invite_service.generate(db, teacher.id, game_id=game.id)
    stored = (await db.execute(select(Invite).where(Invite.uuid == invite_uuid))).scalar_one()
    assert stored.instructor_id == teacher.id
    assert stored.game_id == game.id and stored.group_id is None

    with pytest.raises(Forbidden):
        await invite_service.generate(db, teacher.id, game_id=game.id, group_id=group.id)
    with pytest.raises(NotFound):
        await invite_service.generate(db, teacher.id, game_id=424242)


async def test_admin_generates_for_any_target(db, seed):
    await seed.admin()
    group = await seed.group()
    invite_uuid = await invite_service.generate(db, 0, group_id=group.id)
    assert uuid.UUID(invite_uuid)


async def test_generate_by_unknown_instructor_is_not_found(db):
    with pytest.raises(NotFound):
        await invite_service.generate(db, 9999)
    assert (await db.execute(select(func.count()).select_from(Invite))).scalar_one() == 0


async def test_generate_link_by_unknown_instructor_over_http(client):
    resp = await client.post("/api/teacher/generate_invite_link", json={"instructor_id": 9999})
    assert resp.status_code == 404
    assert resp.json()["status_code"] == 404
