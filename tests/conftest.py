"""Shared fixtures: in-memory SQLite, fake redis and an HTTP client on the app."""
import json
import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core import rate_limit
from app.core.redis import get_redis
from app.core.security import create_access_token, get_password_hash
from app.db.models import Clinic, ClinicDoctor, ClinicStaff, Patient, Professional, SQLModel, User
from app.db.session import get_session
from app.main import app


class FakeRedis:
    """Dict backed stand-in for RedisClient."""

    def __init__(self):
        self.tokens = {}
        self.verifications = {}

    async def set_token(self, token, value, expire):
        self.tokens[token] = value

    async def get_token(self, token):
        return self.tokens.get(token)

    async def delete_token(self, token):
        self.tokens.pop(token, None)

    async def set_verification(self, token, phone, purpose, expire):
        self.verifications[token] = {"phone": phone, "purpose": purpose}

    async def consume_verification(self, token):
        return self.verifications.pop(token, None)

    async def close(self):
        pass


@pytest.fixture(autouse=True)
def reset_limiters():
    for limiter in (rate_limit.register_limiter, rate_limit.otp_limiter, rate_limit.lab_lookup_limiter):
        limiter.reset()
    yield


@pytest.fixture
async def engine(request):
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    if request.node.get_closest_marker("foreign_keys"):
        # sqlite leaves foreign keys unchecked unless asked
        @event.listens_for(engine.sync_engine, "connect")
        def enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
async def client(session_factory, fake_redis, tmp_path, monkeypatch):
    async def override_get_session():
        async with session_factory() as session:
            yield session

    async def override_get_redis():
        return fake_redis

    monkeypatch.setattr("app.core.storage.settings.UPLOAD_DIR", str(tmp_path))
    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_redis] = override_get_redis

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db, fake_redis):
    """Creates a user and returns (user, auth headers)."""

    async def _make_user(email=None, phone=None, role="USER", name="Test User", password="password123"):
        user = User(
            email=email,
            phone=phone,
            name=name,
            role=role,
            password_hash=get_password_hash(password),
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)

        token = create_access_token({"sub": str(user.id)})
        await fake_redis.set_token(token, json.dumps({"user_id": str(user.id), "role": role}), 3600)
        return user, {"Authorization": f"Bearer {token}"}

    return _make_user


@pytest.fixture
async def owner(make_user):
    return await make_user(email="owner@example.com", role="PROFESSIONAL", name="Clinic Owner")


@pytest.fixture
async def clinic(db, owner):
    user, _ = owner
    clinic = Clinic(
        name="Sunrise Clinic",
        slug="sunrise-clinic",
        type="CLINIC",
        address="Lazimpat, Kathmandu",
        phone="9801234567",
        email="clinic@example.com",
        lat=27.7172,
        lng=85.3240,
        verified=True,
        claimed_by_id=user.id,
    )
    db.add(clinic)
    await db.flush()
    db.add(ClinicStaff(clinic_id=clinic.id, user_id=user.id, role="OWNER"))
    await db.commit()
    await db.refresh(clinic)
    return clinic


@pytest.fixture
async def doctor(db, clinic):
    doctor = Professional(
        type="DOCTOR",
        registration_number="NMC-12345",
        full_name="Ram Sharma",
        degree="MBBS, MD",
        verified=True,
    )
    db.add(doctor)
    await db.flush()
    db.add(ClinicDoctor(clinic_id=clinic.id, doctor_id=doctor.id))
    await db.commit()
    await db.refresh(doctor)
    return doctor


@pytest.fixture
def owner_headers(owner, clinic):
    _, headers = owner
    return {**headers, "X-Clinic-Id": str(clinic.id)}


@pytest.fixture
def add_staff(db, make_user, clinic):
    """Adds a staff member with the given role and returns (user, headers)."""

    async def _add_staff(role, email):
        user, headers = await make_user(email=email, role="USER")
        db.add(ClinicStaff(clinic_id=clinic.id, user_id=user.id, role=role))
        await db.commit()
        return user, {**headers, "X-Clinic-Id": str(clinic.id)}

    return _add_staff


@pytest.fixture
async def patient(db, clinic):
    patient = Patient(
        clinic_id=clinic.id,
        patient_number="P-000001",
        full_name="Sita Gurung",
        phone="9841234567",
        address="Pokhara",
    )
    db.add(patient)
    await db.commit()
    await db.refresh(patient)
    return patient
