"""Fixtures for tests that run against a real (in-memory SQLite) database."""

import uuid
from collections.abc import AsyncGenerator
from dataclasses import dataclass

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from devops_maturity.adapters.database import create_schema
from devops_maturity.adapters.password_hasher import Argon2PasswordHasher
from devops_maturity.adapters.repositories import seed_default_roles
from devops_maturity.core.models import Group, Team, User, UserGroup, UserTeam
from devops_maturity.core.permissions import ADMIN_ROLE, EDITOR_ROLE, VIEWER_ROLE

PASSWORD = "correct-horse-battery"


@dataclass(frozen=True)
class Directory:
    """IDs of the seeded users, teams and groups.

    Layout:
        group "Platform" contains team "Payments"; team "Search" has no group.
        alice:  editor on Payments
        bob:    viewer on Payments
        carol:  admin of group Platform (so admin on Payments, nothing on Search)
        dave:   no memberships, inactive
    """

    roles: dict[str, uuid.UUID]
    platform: uuid.UUID
    payments: uuid.UUID
    search: uuid.UUID
    alice: uuid.UUID
    bob: uuid.UUID
    carol: uuid.UUID
    dave: uuid.UUID


@pytest.fixture()
def password_hasher() -> Argon2PasswordHasher:
    return Argon2PasswordHasher(time_cost=1, memory_cost=8, parallelism=1)


@pytest.fixture()
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture()
async def directory(
    session_factory: async_sessionmaker[AsyncSession],
    password_hasher: Argon2PasswordHasher,
) -> Directory:
    password_hash = password_hasher.hash(PASSWORD)
    async with session_factory.begin() as session:
        roles = await seed_default_roles(session)

        platform = Group(name="Platform")
        session.add(platform)
        await session.flush()

        payments = Team(name="Payments", group_id=platform.id)
        search = Team(name="Search")
        alice = User(email="alice@example.com", name="Alice", password_hash=password_hash)
        bob = User(email="bob@example.com", name="Bob", password_hash=password_hash)
        carol = User(email="carol@example.com", name="Carol", password_hash=password_hash)
        dave = User(email="dave@example.com", name="Dave", password_hash=password_hash, is_active=False)
        session.add_all([payments, search, alice, bob, carol, dave])
        await session.flush()

        session.add_all(
            [
                UserTeam(user_id=alice.id, team_id=payments.id, role_id=roles[EDITOR_ROLE]),
                UserTeam(user_id=bob.id, team_id=payments.id, role_id=roles[VIEWER_ROLE]),
                UserGroup(user_id=carol.id, group_id=platform.id, role_id=roles[ADMIN_ROLE]),
            ]
        )

    return Directory(
        roles=roles,
        platform=platform.id,
        payments=payments.id,
        search=search.id,
        alice=alice.id,
        bob=bob.id,
        carol=carol.id,
        dave=dave.id,
    )
