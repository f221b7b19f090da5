"""
测试配置：每个测试使用独立的内存 SQLite（aiosqlite）数据库，AnyIO 固定 asyncio 后端。

SQLite 需要开启外键，并由 SQLAlchemy 自行发出 BEGIN，savepoint（begin_nested）才能按预期工作。
"""
import itertools
import os
from datetime import datetime, timedelta, timezone

os.environ["AUTH_ENABLED"] = "false"
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import httpx
import pytest
from httpx import ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.api.deps import get_token_claims
from app.core.db import Base, get_db
from app.main import create_app
from app.models import (
    ADMIN_INSTRUCTOR_ID,
    Course,
    CourseOwnership,
    Exercise,
    Game,
    GameOwnership,
    Group,
    GroupOwnership,
    Instructor,
    Invite,
    Module,
    Player,
    PlayerRegistration,
    Reward,
)


@pytest.fixture
def anyio_backend():
    return "asyncio"


async def _sqlite_engine(url: str, **kwargs):
    engine = create_async_engine(url, **kwargs)

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    return engine


@pytest.fixture
async def engine():
    engine = await _sqlite_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    yield engine
    await engine.dispose()


@pytest.fixture
async def file_engine(tmp_path):
    """基于文件的 SQLite，每个 session 拿到独立连接，用于并发场景。"""
    engine = await _sqlite_engine(f"sqlite+aiosqlite:///{tmp_path / 'fgpe.db'}")
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)


@pytest.fixture
def file_session_factory(file_engine):
    return async_sessionmaker(bind=file_engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    app = create_app()

    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_token_claims] = lambda: {"sub": "test-user"}
    async with httpx.AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


class Seed:
    """按需插入测试数据，每次调用立即提交。"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self._seq = itertools.count(1)

    async def _add(self, obj):
        self.db.add(obj)
        await self.db.commit()
        return obj

    async def admin(self) -> Instructor:
        return await self._add(
            Instructor(id=ADMIN_INSTRUCTOR_ID, email="admin@example.org", display_name="Administrator")
        )

    async def instructor(self) -> Instructor:
        n = next(self._seq)
        return await self._add(Instructor(email=f"teacher{n}@example.org", display_name=f"Teacher {n}"))

    async def player(self) -> Player:
        n = next(self._seq)
        return await self._add(Player(email=f"player{n}@example.org", display_name=f"Player {n}"))

    async def course(self, *, public: bool = False, languages: str = "en,pt",
                     programming_languages: str = "python,java") -> Course:
        n = next(self._seq)
        return await self._add(
            Course(
                title=f"Course {n}",
                languages=languages,
                programming_languages=programming_languages,
                gamification_rule_conditions="when solved(1) then award(badge)",
                public=public,
            )
        )

    async def module(self, course: Course, order: int, *, language: str = "en") -> Module:
        return await self._add(Module(course_id=course.id, order=order, title=f"Module {order}", language=language))

    async def exercise(self, module: Module, order: int, *, language: str = "en",
                       programming_language: str = "python", hidden: bool = False,
                       locked: bool = False) -> Exercise:
        return await self._add(
            Exercise(
                module_id=module.id,
                order=order,
                title=f"Exercise {order}",
                language=language,
                programming_language=programming_language,
                hidden=hidden,
                locked=locked,
                mode="code",
                mode_parameters={},
            )
        )

    async def game(self, course: Course, *, module_lock: float = 0.0, exercise_lock: bool = False,
                   active: bool = True, public: bool = True, total_exercises: int = 0,
                   programming_language: str = "python") -> Game:
        now = datetime.now(timezone.utc)
        return await self._add(
            Game(
                title=f"Game {next(self._seq)}",
                course_id=course.id,
                programming_language=programming_language,
                module_lock=module_lock,
                exercise_lock=exercise_lock,
                active=active,
                public=public,
                total_exercises=total_exercises,
                start_date=now,
                end_date=now + timedelta(days=30),
            )
        )

    async def registration(self, player: Player, game: Game, *, language: str = "en") -> PlayerRegistration:
        return await self._add(
            PlayerRegistration(player_id=player.id, game_id=game.id, language=language, progress=0, game_state={})
        )

    async def reward(self, course: Course, *, valid_period: timedelta | None = timedelta(days=7)) -> Reward:
        return await self._add(
            Reward(course_id=course.id, name=f"Reward {next(self._seq)}", valid_period=valid_period)
        )

    async def group(self) -> Group:
        return await self._add(Group(display_name=f"Group {next(self._seq)}"))

    async def game_edge(self, game: Game, instructor: Instructor, *, owner: bool) -> GameOwnership:
        return await self._add(GameOwnership(game_id=game.id, instructor_id=instructor.id, owner=owner))

    async def course_edge(self, course: Course, instructor: Instructor, *, owner: bool) -> CourseOwnership:
        return await self._add(CourseOwnership(course_id=course.id, instructor_id=instructor.id, owner=owner))

    async def group_edge(self, group: Group, instructor: Instructor, *, owner: bool) -> GroupOwnership:
        return await self._add(GroupOwnership(group_id=group.id, instructor_id=instructor.id, owner=owner))

    async def invite(self, instructor: Instructor, *, game: Game | None = None, group: Group | None = None,
                     invite_uuid: str = "3f1c2a8e-0000-4000-8000-000000000001") -> Invite:
        return await self._add(
            Invite(
                uuid=invite_uuid,
                instructor_id=instructor.id,
                game_id=game.id if game is not None else None,
                group_id=group.id if group is not None else None,
            )
        )


@pytest.fixture
def seed(db):
    return Seed(db)


@pytest.fixture
async def file_seed(file_session_factory):
    async with file_session_factory() as session:
        yield Seed(session)
