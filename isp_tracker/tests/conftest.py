"""
Test fixtures - in-memory SQLite database, authenticated HTTP client,
in-memory store and a recording email sender
"""
import asyncio

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from isp_tracker.database import Base, get_db
from isp_tracker.main import app
from isp_tracker.api.auth import get_password_hash, create_access_token
from isp_tracker.api.deps import get_email_sender, get_file_storage
from isp_tracker.models import TeamMember, TeamMemberRole
from isp_tracker.models.user import User
from isp_tracker.services.file_storage import LocalFileStorage
from isp_tracker.services.notifications import wait_for_deliveries
from isp_tracker.storage.memory import InMemoryProjectStore


class RecordingSender:
    """Stands in for EmailSender; records every message instead of talking SMTP"""

    def __init__(self, configured=True, fail=False, delay=0.0):
        self.configured = configured
        self.fail = fail
        self.delay = delay
        self.sent = []

    def is_configured(self):
        return self.configured

    async def send(self, to_email, to_name, subject, html_body):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise ConnectionRefusedError("SMTP server unreachable")
        self.sent.append({"to": to_email, "name": to_name, "subject": subject, "html": html_body})


@pytest_asyncio.fixture()
async def db_session():
    """Create a fresh in-memory SQLite database for each test"""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture()
async def seed_data(db_session):
    """Insert baseline test data: a login + a project manager, engineer and technician"""
    user = User(
        username="testuser",
        name="Test User",
        hashed_password=get_password_hash("testpass123"),
        is_admin=True,
    )
    pm = TeamMember(name="Pat Manager", role=TeamMemberRole.PROJECT_MANAGER,
                    email="pat@isptracker.com", phone="555-0001")
    ne = TeamMember(name="Nia Engineer", role=TeamMemberRole.NETWORK_ENGINEER,
                    email="nia@isptracker.com", phone="555-0002")
    ft = TeamMember(name="Finn Tech", role=TeamMemberRole.FIELD_TECHNICIAN,
                    email="finn@isptracker.com")

    db_session.add_all([user, pm, ne, ft])
    await db_session.commit()
    for obj in (user, pm, ne, ft):
        await db_session.refresh(obj)

    return {"user": user, "pm": pm, "ne": ne, "ft": ft}


@pytest.fixture()
def email_sender():
    """Unconfigured by default, tests flip .configured / .fail as needed"""
    return RecordingSender(configured=False)


@pytest.fixture()
def file_storage(tmp_path):
    return LocalFileStorage(str(tmp_path / "uploads"))


def _override_dependencies(db_session, email_sender, file_storage):
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_sender] = lambda: email_sender
    app.dependency_overrides[get_file_storage] = lambda: file_storage


@pytest_asyncio.fixture()
async def client(db_session, seed_data, email_sender, file_storage):
    """Authenticated httpx AsyncClient bound to the FastAPI app"""
    _override_dependencies(db_session, email_sender, file_storage)

    token = create_access_token(data={"sub": seed_data["user"].username})

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test", follow_redirects=True) as ac:
        ac.headers["Authorization"] = f"Bearer {token}"
        yield ac

    await wait_for_deliveries()
    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def unauth_client(db_session, email_sender, file_storage):
    """Unauthenticated httpx AsyncClient"""
    _override_dependencies(db_session, email_sender, file_storage)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test", follow_redirects=True) as ac:
        yield ac

    await wait_for_deliveries()
    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def memory_store():
    """In-memory store with the same three team members as seed_data"""
    store = InMemoryProjectStore()
    await store.create_team_member({"name": "Pat Manager", "role": TeamMemberRole.PROJECT_MANAGER,
                                    "email": "pat@isptracker.com"})
    await store.create_team_member({"name": "Nia Engineer", "role": TeamMemberRole.NETWORK_ENGINEER,
                                    "email": "nia@isptracker.com"})
    await store.create_team_member({"name": "Finn Tech", "role": TeamMemberRole.FIELD_TECHNICIAN,
                                    "email": "finn@isptracker.com"})
    await store.commit()
    return store
