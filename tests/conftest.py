import os
from datetime import date, datetime, timedelta
from typing import AsyncGenerator
from uuid import UUID, uuid4

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("LOG_JSON", "false")

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from sis.core.config import settings
from sis.core.enums import UserRole
from sis.core.models import AcademicYear, ClassGroup, School, Subject, User
from sis.db.session import Base, get_db
from sis.main import app


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture()
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory schema per test; one shared connection so every session sees it."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            yield session

        app.dependency_overrides[get_db] = override_get_db
        yield session

    app.dependency_overrides.pop(get_db, None)
    await engine.dispose()


@pytest.fixture()
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


def make_token(user_id: UUID, school_id: UUID, role: str = UserRole.ADMIN.value) -> str:
    claims = {
        "sub": str(user_id),
        "school_id": str(school_id),
        "role": role,
        "exp": datetime.utcnow() + timedelta(hours=1),
    }
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


async def _add(db: AsyncSession, obj):
    db.add(obj)
    await db.commit()
    return obj.id


@pytest.fixture()
async def school_id(db_session: AsyncSession) -> UUID:
    return await _add(db_session, School(name="Harbour High", code=f"HH-{uuid4().hex[:6]}"))


@pytest.fixture()
async def teacher_id(db_session: AsyncSession, school_id: UUID) -> UUID:
    return await _add(
        db_session,
        User(school_id=school_id, full_name="Ada Teacher", email="ada@example.com", role=UserRole.TEACHER.value),
    )


@pytest.fixture()
async def make_student(db_session: AsyncSession, school_id: UUID):
    async def _make(name: str = "Student") -> UUID:
        return await _add(
            db_session,
            User(
                school_id=school_id,
                full_name=name,
                email=f"{uuid4().hex[:10]}@example.com",
                role=UserRole.STUDENT.value,
            ),
        )

    return _make


@pytest.fixture()
async def year_id(db_session: AsyncSession, school_id: UUID) -> UUID:
    return await _add(
        db_session,
        AcademicYear(
            school_id=school_id,
            name="2024/2025",
            year_code="AY-2024",
            start_date=date(2024, 7, 1),
            end_date=date(2025, 6, 30),
            is_active=True,
        ),
    )


@pytest.fixture()
async def make_class(db_session: AsyncSession, school_id: UUID):
    async def _make(academic_year_id: UUID, class_code: str = "7A", max_students=None, level_id=None) -> UUID:
        return await _add(
            db_session,
            ClassGroup(
                school_id=school_id,
                academic_year_id=academic_year_id,
                name=f"Class {class_code}",
                class_code=class_code,
                level_id=level_id,
                max_students=max_students,
            ),
        )

    return _make


@pytest.fixture()
async def class_id(make_class, year_id: UUID) -> UUID:
    return await make_class(year_id)


@pytest.fixture()
async def make_subject(db_session: AsyncSession, school_id: UUID):
    async def _make(name: str = "Mathematics", code: str = "MATH") -> UUID:
        return await _add(db_session, Subject(school_id=school_id, name=name, code=code))

    return _make


@pytest.fixture()
async def subject_id(make_subject) -> UUID:
    return await make_subject()


@pytest.fixture()
def auth_headers(teacher_id: UUID, school_id: UUID) -> dict:
    return {"Authorization": f"Bearer {make_token(teacher_id, school_id)}"}
