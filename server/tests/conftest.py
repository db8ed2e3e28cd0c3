"""
Shared fixtures for the ESIGN compliance engine test suite.

Every test gets its own in-memory SQLite database; the application's
``get_db`` dependency is overridden to hand out sessions bound to it.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("REDIS_ENABLED", "false")

from typing import AsyncIterator, Sequence  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from esign_engine.api.dependencies.database import get_db  # noqa: E402
from esign_engine.core.security import create_access_token  # noqa: E402
from esign_engine.db.base import Base  # noqa: E402
from esign_engine.main import app  # noqa: E402
from esign_engine.models import Contract, ContractSigner  # noqa: E402
from esign_engine.services.audit_trail import AuditTrailRecorder  # noqa: E402
from esign_engine.services.certificate_issuer import CertificateIssuer  # noqa: E402
from esign_engine.services.consent_ledger import ConsentLedger  # noqa: E402
from esign_engine.services.context import RequestContext  # noqa: E402
from esign_engine.services.intent_confirmer import IntentConfirmer  # noqa: E402
from esign_engine.services.review_tracker import ReviewTracker  # noqa: E402
from esign_engine.services.signing_coordinator import SigningCoordinator  # noqa: E402

TEST_DATABASE_URL = "sqlite+aiosqlite://"
CONTRACT_CONTENT = "This Master Services Agreement is entered into by the parties below."


@pytest_asyncio.fixture
async def engine():
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def request_context() -> RequestContext:
    return RequestContext(actor_id="user-123", ip_address="203.0.113.7", user_agent="pytest-agent/1.0")


@pytest.fixture
def contract_factory(session_factory):
    """Persist a contract with its signers and return both."""

    async def create(
        *,
        title: str = "Master Services Agreement",
        content: str = CONTRACT_CONTENT,
        signers: Sequence[tuple] = (("Jane Doe", "jane@example.com"),),
    ) -> tuple[Contract, list[ContractSigner]]:
        async with session_factory() as session:
            contract = Contract(title=title, content=content)
            session.add(contract)
            await session.flush()
            rows = [ContractSigner(contract_id=contract.id, name=name, email=email) for name, email in signers]
            session.add_all(rows)
            await session.commit()
            return contract, rows

    return create


@pytest.fixture
def coordinator_factory():
    """Wire a SigningCoordinator and its collaborators around one session."""

    def build(session: AsyncSession, *, policy=None, redis_client=None, certificate_issuer=None) -> SigningCoordinator:
        recorder = AuditTrailRecorder(session)
        return SigningCoordinator(
            session,
            recorder=recorder,
            consent_ledger=ConsentLedger(session, recorder, disclosure_version="1.0"),
            review_tracker=ReviewTracker(session, recorder),
            intent_confirmer=IntentConfirmer(session),
            certificate_issuer=certificate_issuer or CertificateIssuer(session),
            policy=policy,
            redis_client=redis_client,
        )

    return build


@pytest.fixture
def auth_headers() -> dict[str, str]:
    token = create_access_token("user-123")
    return {"Authorization": f"Bearer {token}", "User-Agent": "pytest-agent/1.0"}


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncIterator[AsyncClient]:
    async def override_get_db() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        yield async_client
    app.dependency_overrides.clear()
