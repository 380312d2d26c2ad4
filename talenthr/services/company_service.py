"""Company bootstrap: slug generation and the records every new tenant starts with."""

import re
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from talenthr.models.company import Company
from talenthr.models.department import Department
from talenthr.models.user import User
from talenthr.services.employee_service import create_employee_record

logger = structlog.get_logger()

DEFAULT_DEPARTMENTS = [
    ("Engineering", "Software development and technical teams"),
    ("Human Resources", "HR and people operations"),
    ("Sales", "Sales and business development"),
    ("Marketing", "Marketing and brand management"),
    ("Finance", "Finance and accounting"),
    ("Operations", "Operations and logistics"),
    ("Customer Support", "Customer service and support"),
    ("Product", "Product management and strategy"),
]


def slugify(name: str) -> str:
    """'Acme  Corp, Inc.' -> 'acme-corp-inc'"""
    slug = name.lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


async def company_name_taken(db: AsyncSession, name: str) -> bool:
    result = await db.execute(
        select(Company.id).where(func.lower(Company.name) == name.strip().lower())
    )
    return result.first() is not None


async def create_company_with_admin(
    db: AsyncSession,
    company_name: str,
    email: str,
    name: str,
    password_hash: str,
) -> tuple[Company, User]:
    """
    Create a company, its admin user, the admin's employee record and the
    default departments. Flushes only; the request session commits.
    """
    company = Company(
        name=company_name.strip(),
        slug=slugify(company_name),
        status="active",
    )
    db.add(company)
    await db.flush()

    admin = User(
        company_id=company.id,
        email=email,
        password_hash=password_hash,
        name=name,
        role="company_admin",
        status="active",
    )
    db.add(admin)
    await db.flush()

    await create_employee_record(
        db,
        admin,
        company,
        position="Company Administrator",
        employment_type="full-time",
        hire_date=datetime.utcnow(),
    )

    db.add_all(
        Department(
            company_id=company.id,
            name=dept_name,
            description=description,
            status="active",
        )
        for dept_name, description in DEFAULT_DEPARTMENTS
    )
    await db.flush()

    logger.info(
        "company_created",
        company_id=str(company.id),
        slug=company.slug,
        admin_id=str(admin.id),
        departments=len(DEFAULT_DEPARTMENTS),
    )
    return company, admin
