import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

from typing import AsyncGenerator, Callable, Dict, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from educore.auth.models import Role, User
from educore.auth.security import create_access_token, hash_password
from educore.core.enums import FeeCategory, LearnerStatus
from educore.core.models import FeeType, Learner, School
from educore.db.seed_school import ROLE_PERMISSIONS
from educore.db.session import Base, get_db
from educore.main import app


TEST_DATABASE_URL = "sqlite+aiosqlite://"
# SQLite has no schemas; core/auth/school all map onto the default one
SCHEMA_MAP = {"core": None, "auth": None, "school": None}
TEST_PASSWORD_HASH = hash_password("password")


@pytest.fixture()
async def engine():
    """A fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        execution_options={"schema_translate_map": SCHEMA_MAP},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session used by tests to arrange data and inspect results."""
    async with session_factory() as session:
        yield session


@pytest.fixture()
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app; each request gets its own session."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def _create_school(db: AsyncSession, name: str) -> School:
    school = School(name=name, status="ACTIVE")
    db.add(school)
    await db.flush()
    for role_name, permissions in ROLE_PERMISSIONS.items():
        db.add(Role(school_id=school.id, name=role_name, permissions=permissions))
    await db.commit()
    return school


@pytest.fixture()
async def school(db_session: AsyncSession) -> School:
    return await _create_school(db_session, "Kilimani Primary")


@pytest.fixture()
async def other_school(db_session: AsyncSession) -> School:
    return await _create_school(db_session, "Lakeside Academy")


@pytest.fixture()
def make_user(db_session: AsyncSession) -> Callable:
    counter = {"n": 0}

    async def _make(school: Optional[School], role: str = "SCHOOL_ADMIN", branch_id=None) -> User:
        counter["n"] += 1
        user = User(
            school_id=school.id if school is not None else None,
            branch_id=branch_id,
            full_name=f"{role.title()} {counter['n']}",
            email=f"user{counter['n']}@example.com",
            password_hash=TEST_PASSWORD_HASH,
            role=role,
            status="ACTIVE",
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _make


@pytest.fixture()
async def admin(make_user, school) -> User:
    return await make_user(school, "SCHOOL_ADMIN")


@pytest.fixture()
async def other_admin(make_user, other_school) -> User:
    return await make_user(other_school, "SCHOOL_ADMIN")


@pytest.fixture()
async def super_admin(make_user) -> User:
    return await make_user(None, "SUPER_ADMIN")


@pytest.fixture()
def auth_headers() -> Callable[..., Dict[str, str]]:
    """Bearer headers for a user; extra entries (e.g. X-School-Id) are merged in."""

    def _headers(user: User, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        token = create_access_token(
            subject={
                "user_id": user.id,
                "school_id": user.school_id,
                "branch_id": user.branch_id,
                "role": user.role,
            }
        )
        headers = {"Authorization": f"Bearer {token}"}
        headers.update(extra or {})
        return headers

    return _headers


@pytest.fixture()
def admin_headers(admin, auth_headers) -> Dict[str, str]:
    return auth_headers(admin)


@pytest.fixture()
def make_learner(db_session: AsyncSession) -> Callable:
    counter = {"n": 0}

    async def _make(
        school: School,
        grade: str = "GRADE_4",
        stream: Optional[str] = None,
        status: LearnerStatus = LearnerStatus.ACTIVE,
        archived: bool = False,
        branch_id=None,
    ) -> Learner:
        counter["n"] += 1
        learner = Learner(
            school_id=school.id,
            branch_id=branch_id,
            admission_number=f"ADM{counter['n']:04d}",
            first_name="Learner",
            last_name=str(counter["n"]),
            grade=grade,
            stream=stream,
            status=status.value,
            archived=archived,
        )
        db_session.add(learner)
        await db_session.commit()
        return learner

    return _make


@pytest.fixture()
def make_fee_type(db_session: AsyncSession) -> Callable:
    async def _make(school: School, code: str = "TUITION", is_active: bool = True) -> FeeType:
        fee_type = FeeType(
            school_id=school.id,
            code=code,
            name=code.title(),
            category=FeeCategory.ACADEMIC.value,
            is_active=is_active,
        )
        db_session.add(fee_type)
        await db_session.commit()
        return fee_type

    return _make


@pytest.fixture()
def make_structure(client: AsyncClient, make_fee_type) -> Callable:
    """Create a fee structure through the API; returns the response JSON."""

    async def _make(
        school: School,
        headers: Dict[str, str],
        amounts=("5000.00",),
        grade: Optional[str] = "GRADE_4",
        term: Optional[str] = "TERM_1",
        academic_year: int = 2025,
        name: str = "Grade 4 Term 1",
    ) -> dict:
        items = []
        for i, amount in enumerate(amounts):
            fee_type = await make_fee_type(school, code=f"FEE{i}_{name.replace(' ', '_').upper()}")
            items.append({"fee_type_id": str(fee_type.id), "amount": amount})
        response = await client.post(
            "/api/v1/fees/structures",
            json={
                "name": name,
                "grade": grade,
                "term": term,
                "academic_year": academic_year,
                "items": items,
            },
            headers=headers,
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _make
