"""
Test fixtures for the User Service test suite.

This module provides shared fixtures used across all test files:

  - settings / app: An application built by create_app() on a fresh
    in-memory SQLite database for each test
  - db_session: A session on that same database, for repository tests
  - client: Async HTTP test client (unauthenticated)
  - member / second_member / admin: Registered users with a logged-in token
  - user_repository / user_service: The application service wired to an
    in-memory repository, for tests that don't need SQL at all

Key design decisions:
  - In-memory SQLite (sqlite+aiosqlite://) is used for speed and isolation.
    Each test gets a completely fresh database, so no state leaks between
    tests.
  - The app is built with its own Settings instead of patching globals, so
    the application code runs exactly as it does in production.
  - ASGITransport does not run the lifespan, so the tables are created here.
  - Users are registered through the real /users/register and /users/login
    endpoints. The admin is created by registering normally and then
    updating the role column directly, the same way an operator provisions
    the first admin with demo/promote_admin.py.
  - Each user fixture carries its own headers dict rather than mutating
    client.headers, so one test can act as several users.
"""

from dataclasses import dataclass, replace

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import update

from user_service.config import Settings
from user_service.database import Base
from user_service.domain.entities import User
from user_service.domain.repository import UserRepository
from user_service.domain.services import UserDomainService
from user_service.exceptions import (
    EmailAlreadyExistsError,
    UserNotFoundError,
    UsernameAlreadyExistsError,
)
from user_service.main import create_app
from user_service.models.user import UserModel
from user_service.security import TokenIssuer
from user_service.services.user_service import UserApplicationService

TEST_SECRET = "test-secret-key-for-the-suite"
TEST_PASSWORD = "SecurePass123"


# ---------------------------------------------------------------------------
# Application and database
# ---------------------------------------------------------------------------

@pytest.fixture
def settings():
    return Settings(
        JWT_SECRET=TEST_SECRET,
        DATABASE_URL="sqlite+aiosqlite://",
        APP_MODE="test",
    )


@pytest_asyncio.fixture
async def app(settings):
    application = create_app(settings)
    async with application.state.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield application
    await application.state.engine.dispose()


@pytest_asyncio.fixture
async def db_session(app):
    """Provide a session on the app's in-memory database."""
    async with app.state.session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ---------------------------------------------------------------------------
# Registered users
# ---------------------------------------------------------------------------

@dataclass
class AuthenticatedUser:
    id: int
    username: str
    password: str
    token: str

    @property
    def headers(self) -> dict:
        return {"Authorization": f"Bearer {self.token}"}


async def register_user(
    client: AsyncClient,
    username: str,
    email: str | None = None,
    password: str = TEST_PASSWORD,
    nickname: str | None = None,
) -> dict:
    """Register through the API and return the created user's data."""
    payload = {
        "username": username,
        "email": email or f"{username}@example.com",
        "password": password,
    }
    if nickname is not None:
        payload["nickname"] = nickname
    response = await client.post("/users/register", json=payload)
    assert response.status_code == 201, f"Register failed: {response.text}"
    return response.json()["data"]


async def login_user(client: AsyncClient, username: str, password: str = TEST_PASSWORD) -> str:
    response = await client.post(
        "/users/login", json={"username": username, "password": password}
    )
    assert response.status_code == 200, f"Login failed: {response.text}"
    return response.json()["data"]["token"]


async def create_authenticated_user(
    client: AsyncClient, username: str, password: str = TEST_PASSWORD
) -> AuthenticatedUser:
    data = await register_user(client, username, password=password)
    token = await login_user(client, username, password)
    return AuthenticatedUser(id=data["id"], username=username, password=password, token=token)


@pytest_asyncio.fixture
async def member(client):
    """A registered USER with a valid token."""
    return await create_authenticated_user(client, "alice")


@pytest_asyncio.fixture
async def second_member(client):
    """A second USER for cross-user tests."""
    return await create_authenticated_user(client, "bob")


@pytest_asyncio.fixture
async def admin(app, client):
    """
    A registered ADMIN with a valid token.

    The role is granted directly in the database, then the admin logs in
    again so the token carries the admin role.
    """
    data = await register_user(client, "root")
    async with app.state.session_factory() as session:
        await session.execute(
            update(UserModel).where(UserModel.id == data["id"]).values(role="admin")
        )
        await session.commit()
    token = await login_user(client, "root")
    return AuthenticatedUser(id=data["id"], username="root", password=TEST_PASSWORD, token=token)


# ---------------------------------------------------------------------------
# In-memory repository for service-level tests
# ---------------------------------------------------------------------------

class InMemoryUserRepository(UserRepository):
    """
    Dict-backed UserRepository with the same contract as the SQL one.

    Stored users are copies, so a caller mutating an entity it loaded does
    not change what is stored until it calls save().
    """

    def __init__(self):
        self._rows: dict[int, User] = {}
        self._next_id = 1

    def _live(self):
        return [user for user in self._rows.values() if user.deleted_at is None]

    async def save(self, user: User) -> User:
        for other in self._live():
            if other.id == user.id:
                continue
            if other.username == user.username:
                raise UsernameAlreadyExistsError(user.username)
            if other.email == user.email:
                raise EmailAlreadyExistsError(str(user.email))

        if user.id is None:
            user.id = self._next_id
            self._next_id += 1
        elif user.id not in self._rows or self._rows[user.id].deleted_at is not None:
            raise UserNotFoundError(user.id)

        self._rows[user.id] = replace(user)
        return user

    async def _find(self, predicate, key) -> User:
        for user in self._live():
            if predicate(user):
                return replace(user)
        raise UserNotFoundError(key)

    async def find_by_id(self, user_id: int) -> User:
        return await self._find(lambda u: u.id == user_id, user_id)

    async def find_by_uuid(self, uuid: str) -> User:
        return await self._find(lambda u: u.uuid == uuid, uuid)

    async def find_by_username(self, username: str) -> User:
        return await self._find(lambda u: u.username == username, username)

    async def find_by_email(self, email: str) -> User:
        return await self._find(lambda u: str(u.email) == email, email)

    async def delete(self, user_id: int) -> None:
        stored = self._rows.get(user_id)
        if stored is None or stored.deleted_at is not None:
            raise UserNotFoundError(user_id)
        stored.deleted_at = stored.updated_at

    async def exists_by_username(self, username: str) -> bool:
        return any(user.username == username for user in self._live())

    async def exists_by_email(self, email: str) -> bool:
        return any(str(user.email) == email for user in self._live())

    async def list(self, offset: int, limit: int) -> tuple[list[User], int]:
        live = sorted(self._live(), key=lambda user: user.id)
        return [replace(user) for user in live[offset:offset + limit]], len(live)


@pytest.fixture
def token_issuer():
    return TokenIssuer(secret=TEST_SECRET)


@pytest.fixture
def user_repository():
    return InMemoryUserRepository()


@pytest.fixture
def domain_service(user_repository):
    return UserDomainService(user_repository)


@pytest.fixture
def user_service(user_repository, domain_service, token_issuer):
    return UserApplicationService(
        user_repository=user_repository,
        domain_service=domain_service,
        token_issuer=token_issuer,
    )
