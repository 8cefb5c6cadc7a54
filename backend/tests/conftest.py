"""Pytest fixtures for the accounts backend."""

import os

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./accounts-test.db")
os.environ.setdefault("ACCESS_TOKEN_SECRET", "test-access-secret-0123456789abcdef0123456789")
os.environ.setdefault("REFRESH_TOKEN_SECRET", "test-refresh-secret-0123456789abcdef012345678")

from collections.abc import AsyncIterator, Iterator  # noqa: E402
from datetime import timedelta  # noqa: E402
from pathlib import Path  # noqa: E402
from uuid import uuid4  # noqa: E402

from alembic import command  # noqa: E402
from alembic.config import Config  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

from api.deps import get_db, get_media_store  # noqa: E402
from app import create_app  # noqa: E402
from core.config import settings  # noqa: E402
from models import MediaAsset  # noqa: E402
from services.auth import CredentialStore, TokenConfig, TokenService  # noqa: E402

TEST_ACCESS_SECRET = "unit-access-secret-0123456789abcdef0123456789ab"
TEST_REFRESH_SECRET = "unit-refresh-secret-0123456789abcdef0123456789a"


def _run_alembic_migrations(database_url: str) -> None:
    """Apply Alembic migrations to the given database URL."""
    backend_dir = Path(__file__).resolve().parents[1]
    alembic_cfg = Config(str(backend_dir / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(backend_dir / "alembic"))
    alembic_cfg.attributes["configure_logger"] = False

    original_database_url = settings.database_url
    try:
        settings.database_url = database_url
        command.upgrade(alembic_cfg, "head")
    finally:
        settings.database_url = original_database_url


class FakeMediaStore:
    """In-memory stand-in for the MinIO media store.

    Mirrors the real contract: the local file is consumed on every upload
    attempt, and failures are reported through return values.
    """

    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.events: list[tuple[str, str]] = []
        self.fail_uploads = False
        self.fail_deletes = False

    async def upload(self, local_path: str | Path | None) -> MediaAsset | None:
        if not local_path:
            return None
        path = Path(local_path)
        try:
            data = path.read_bytes()
        except OSError:
            return None
        finally:
            path.unlink(missing_ok=True)
        if self.fail_uploads:
            self.events.append(("upload_failed", path.name))
            return None
        key = f"media/{uuid4().hex}{path.suffix.lower()}"
        self.objects[key] = data
        self.events.append(("upload", key))
        return MediaAsset(external_id=key, url=f"https://media.example.com/{key}")

    async def delete(self, external_id: str) -> bool:
        if self.fail_deletes:
            self.events.append(("delete_failed", external_id))
            return False
        self.objects.pop(external_id, None)
        self.events.append(("delete", external_id))
        return True


@pytest.fixture(scope="session")
def test_database_url(tmp_path_factory) -> str:
    """Create and migrate a file-backed SQLite database for tests."""
    db_dir = tmp_path_factory.mktemp("sqlite")
    db_path = db_dir / "accounts-test.db"
    database_url = f"sqlite+aiosqlite:///{db_path}"
    _run_alembic_migrations(database_url)
    return database_url


@pytest_asyncio.fixture()
async def test_engine(test_database_url: str) -> AsyncIterator:
    """Create an async engine bound to the migrated SQLite test database."""
    engine = create_async_engine(
        test_database_url,
        connect_args={"check_same_thread": False},
    )
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_maker(test_engine) -> async_sessionmaker[AsyncSession]:
    """Return a session factory bound to the test engine."""
    return async_sessionmaker(test_engine, expire_on_commit=False)


@pytest_asyncio.fixture(autouse=True)
async def clean_database(session_maker) -> AsyncIterator[None]:
    """Clear tables before each test to guarantee isolation."""
    async with session_maker() as session:
        for table in reversed(SQLModel.metadata.sorted_tables):
            await session.execute(table.delete())
        await session.commit()
    yield


@pytest.fixture()
def media_store() -> FakeMediaStore:
    return FakeMediaStore()


@pytest.fixture()
def app(session_maker, media_store: FakeMediaStore) -> Iterator[FastAPI]:
    """Create the FastAPI app with test database and media store overrides."""
    application = create_app()

    async def override_get_db() -> AsyncIterator[AsyncSession]:
        async with session_maker() as session:
            yield session

    application.dependency_overrides[get_db] = override_get_db
    application.dependency_overrides[get_media_store] = lambda: media_store
    yield application
    application.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def async_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Return an HTTPX async client bound to the FastAPI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest_asyncio.fixture()
async def db_session(session_maker) -> AsyncIterator[AsyncSession]:
    """Provide a raw database session to tests."""
    async with session_maker() as session:
        yield session


@pytest.fixture()
def store(db_session: AsyncSession) -> CredentialStore:
    return CredentialStore(db_session)


@pytest.fixture()
def token_config() -> TokenConfig:
    return TokenConfig(
        access_secret=TEST_ACCESS_SECRET,
        access_ttl=timedelta(minutes=15),
        refresh_secret=TEST_REFRESH_SECRET,
        refresh_ttl=timedelta(days=7),
    )


@pytest.fixture()
def token_service(token_config: TokenConfig, store: CredentialStore) -> TokenService:
    return TokenService(token_config, store)


@pytest.fixture()
def upload_file(tmp_path: Path):
    """Return a factory writing a small local file that stands in for a spooled upload."""

    def _make(name: str = "avatar.png", content: bytes = b"\x89PNG\r\n\x1a\nfake") -> Path:
        path = tmp_path / f"{uuid4().hex}-{name}"
        path.write_bytes(content)
        return path

    return _make
