import os
import tempfile
import uuid
from pathlib import Path
from types import SimpleNamespace

# settings are read at import time , point them at a throwaway sqlite db first
TEST_DB = Path(tempfile.gettempdir()) / f"marketplace_payouts_test_{os.getpid()}.db"
TEST_KEY_HEX = "6d2b7c1f0e9a8b7c6d5e4f30211203f4e5d6c7b8a99a8b7c6d5e4f3021120304"

os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{TEST_DB}"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["PASS_HASH_SCHEME"] = "argon2"
os.environ["PAYOUT_ENCRYPTION_KEY"] = TEST_KEY_HEX
os.environ["PAYOUT_STEP_UP_POLICY"] = "strict"
os.environ["ENV"] = "dev"

import pytest
from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlmodel import SQLModel
from marketplace.auth.utils import hash_password, issue_access_token
from marketplace.common.utils import now
from marketplace.db.connection import async_engine, async_session
from marketplace.main import app
from marketplace.schema.full_schema import Credential, CredentialType, Role, UserRole, Users

url_prefix = "/api/v1"
SETTINGS = f"{url_prefix}/seller/settings"
SELLER_PASSWORD = "correct-horse-battery"


@pytest.fixture(autouse=True)
async def fresh_db():
    async with async_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
        await conn.run_sync(SQLModel.metadata.create_all)
    yield
    await async_engine.dispose()


@pytest.fixture
async def db_session():
    async with async_session() as session:
        yield session


@pytest.fixture
async def ac_client():
    async with LifespanManager(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac


async def create_user(roles=("seller",), password=SELLER_PASSWORD, revoked=False):
    async with async_session() as session:
        user = Users(email=f"{uuid.uuid4().hex[:12]}@example.com", name="Test Seller")
        session.add(user)
        await session.flush()

        for role_name in roles:
            res = await session.execute(select(Role).where(Role.name == role_name))
            role = res.scalar_one_or_none()
            if role is None:
                role = Role(name=role_name)
                session.add(role)
                await session.flush()
            session.add(UserRole(user_id=user.id, role_id=role.id))

        if password:
            cred = Credential(user_id=user.id, type=CredentialType.PASSWORD.value,
                              password_hash=hash_password(password))
            if revoked:
                cred.revoked_at = now()
            session.add(cred)

        await session.commit()

        token = issue_access_token(str(user.public_id))
        return SimpleNamespace(
            id=user.id,
            public_id=user.public_id,
            password=password,
            headers={"Authorization": f"Bearer {token}"},
        )


@pytest.fixture
async def seller():
    return await create_user()


@pytest.fixture
async def other_seller():
    return await create_user()


def bank_payload(account="1234567890", routing="110000021", **extra):
    body = {
        "kind": "bank_transfer",
        "bankName": "First Test Bank",
        "accountNumber": account,
        "routingNumber": routing,
        "accountHolderName": "Ada Seller",
        "accountType": "checking",
        "country": "US",
        "currency": "usd",
        "password": SELLER_PASSWORD,
    }
    body.update(extra)
    return body


async def add_method(ac, user, body):
    resp = await ac.post(f"{SETTINGS}/payout-methods", json=body, headers=user.headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]["payoutMethod"]


async def list_methods(ac, user):
    resp = await ac.get(f"{SETTINGS}/payout-methods", headers=user.headers)
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]["payoutMethods"]


def pytest_sessionfinish(session, exitstatus):
    TEST_DB.unlink(missing_ok=True)
