import re
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from talenthr.models.company import Company
from talenthr.models.employee import Employee
from talenthr.models.user import User

logger = structlog.get_logger()

_SEQUENCE_RE = re.compile(r"EMP(\d+)$")


def employee_code_prefix(company: Company) -> str:
    return f"{company.slug.upper()}-EMP"


async def next_employee_code(db: AsyncSession, company: Company) -> str:
    """Next ``<SLUG>-EMP<nnn>`` code for the company, sequence starting at 001."""
    prefix = employee_code_prefix(company)
    result = await db.execute(
        select(Employee.employee_code)
        .join(User, Employee.user_id == User.id)
        .where(
            User.company_id == company.id,
            Employee.employee_code.like(f"{prefix}%"),
        )
    )
    sequence = 0
    for code in result.scalars():
        match = _SEQUENCE_RE.search(code)
        if match:
            sequence = max(sequence, int(match.group(1)))
    return f"{prefix}{sequence + 1:03d}"


async def create_employee_record(
    db: AsyncSession,
    user: User,
    company: Optional[Company] = None,
    **fields,
) -> Employee:
    if company is None:
        company = await db.get(Company, user.company_id)

    employee = Employee(
        user_id=user.id,
        employee_code=await next_employee_code(db, company),
        status="active",
        **fields,
    )
    # The tenant check reads employee.user; set it so no lazy load is needed.
    employee.user = user
    db.add(employee)
    await db.flush()

    logger.info(
        "employee_record_created",
        employee_id=str(employee.id),
        employee_code=employee.employee_code,
        company_id=str(company.id),
    )
    return employee
