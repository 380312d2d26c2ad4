import os
import uuid
from dataclasses import dataclass, field

# Settings are read at import time
os.environ["ENVIRONMENT"] = "development"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["JWT_ALGORITHM"] = "HS256"
os.environ["BREVO_API_KEY"] = ""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from talenthr.database import Base, get_db
from talenthr.main import app
from talenthr.models.department import Department
from talenthr.models.user import User
from talenthr.services.auth_service import create_access_token, hash_password
from talenthr.services.company_service import create_company_with_admin
from talenthr.services.employee_service import create_employee_record

PASSWORD = "Sup3rSecret!"
PASSWORD_HASH = hash_password(PASSWORD)


@dataclass
class Tenant:
    company_id: uuid.UUID
    admin_id: uuid.UUID
    admin_email: str
    headers: dict
    # Default department name -> id (str)
    departments: dict = field(default_factory=dict)


def auth_headers(user_id, company_id, role: str, email: str) -> dict:
    token = create_access_token(str(user_id), str(company_id), role, email)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


async def _seed_company(session_factory, company_name: str, admin_email: str) -> Tenant:
    async with session_factory() as session:
        company, admin = await create_company_with_admin(
            session,
            company_name=company_name,
            email=admin_email,
            name="Admin User",
            password_hash=PASSWORD_HASH,
        )
        depts = await session.execute(
            select(Department).where(Department.company_id == company.id)
        )
        departments = {d.name: str(d.id) for d in depts.scalars()}
        await session.commit()

    return Tenant(
        company_id=company.id,
        admin_id=admin.id,
        admin_email=admin_email,
        headers=auth_headers(admin.id, company.id, "company_admin", admin_email),
        departments=departments,
    )


@pytest.fixture
async def tenant_a(session_factory) -> Tenant:
    return await _seed_company(session_factory, "Acme Corp", "admin@acme-corp.com")


@pytest.fixture
async def tenant_b(session_factory) -> Tenant:
    return await _seed_company(session_factory, "Globex Industries", "admin@globex.com")


async def add_user(
    session_factory,
    tenant: Tenant,
    role: str,
    email: str,
    name: str = "Team Member",
    status: str = "active",
) -> tuple[uuid.UUID, dict]:
    """Insert a user into ``tenant``; returns its id and bearer headers."""
    async with session_factory() as session:
        user = User(
            company_id=tenant.company_id,
            email=email,
            password_hash=PASSWORD_HASH,
            name=name,
            role=role,
            status=status,
        )
        session.add(user)
        await session.commit()
    return user.id, auth_headers(user.id, tenant.company_id, role, email)


async def add_employee(session_factory, user_id, **fields):
    async with session_factory() as session:
        user = await session.get(User, user_id)
        employee = await create_employee_record(session, user, **fields)
        await session.commit()
    return employee
