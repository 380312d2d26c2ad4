from datetime import datetime
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import false, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from talenthr.errors import Conflict, Forbidden, ValidationError
from talenthr.middleware.authorization import ADMIN_ROLES, require_roles
from talenthr.middleware.tenant import TenantContext, get_tenant_context
from talenthr.models.department import Department
from talenthr.models.employee import Employee
from talenthr.models.user import User
from talenthr.schemas.common import DepartmentRef, UserRef, supplied
from talenthr.schemas.employee import EmployeeCreate, EmployeeResponse, EmployeeUpdate
from talenthr.services import resources
from talenthr.services.audit_service import create_audit_log, snapshot
from talenthr.services.employee_service import create_employee_record
from talenthr.services.guards import FOR_SHARE, merge_partial, parse_uuid, soft_delete

logger = structlog.get_logger()
router = APIRouter()

VIEW_ROLES = ("company_admin", "hr_manager", "manager")

CLEARABLE_FIELDS = (
    "department_id",
    "manager_id",
    "salary",
    "work_location",
    "phone",
    "address",
    "emergency_contact",
    "notes",
)

TRANSFORMS = {
    "salary": lambda v: Decimal(str(v)),
}


def _nested(body, changes: dict) -> None:
    """Nested objects are stored camelCased, as they are sent."""
    for field in ("address", "emergency_contact"):
        if changes.get(field) is not None:
            changes[field] = getattr(body, field).model_dump(by_alias=True, exclude_none=True)


async def _to_responses(db: AsyncSession, emps: list[Employee]) -> list[EmployeeResponse]:
    dept_ids = {e.department_id for e in emps if e.department_id}
    manager_ids = {e.manager_id for e in emps if e.manager_id}

    depts = {}
    if dept_ids:
        rows = await db.execute(select(Department).where(Department.id.in_(dept_ids)))
        depts = {d.id: d for d in rows.scalars()}
    managers = {}
    if manager_ids:
        rows = await db.execute(select(User).where(User.id.in_(manager_ids)))
        managers = {m.id: m for m in rows.scalars()}

    out = []
    for e in emps:
        dept = depts.get(e.department_id)
        manager = managers.get(e.manager_id)
        out.append(
            EmployeeResponse(
                id=str(e.id),
                user_id=str(e.user_id),
                employee_code=e.employee_code,
                name=e.user.name,
                email=e.user.email,
                role=e.user.role,
                user_status=e.user.status,
                department=(
                    DepartmentRef(id=str(dept.id), name=dept.name, code=dept.code)
                    if dept else None
                ),
                position=e.position,
                hire_date=e.hire_date,
                employment_type=e.employment_type,
                salary=float(e.salary) if e.salary is not None else None,
                manager=(
                    UserRef(id=str(manager.id), name=manager.name, email=manager.email)
                    if manager else None
                ),
                work_location=e.work_location,
                phone=e.phone,
                address=e.address,
                emergency_contact=e.emergency_contact,
                skills=e.skills or [],
                notes=e.notes,
                status=e.status,
                created_at=e.created_at,
                updated_at=e.updated_at,
            )
        )
    return out


@router.get("")
async def list_employees(
    department_id: Optional[str] = Query(None, alias="departmentId"),
    status_filter: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = Query(None),
    ctx: TenantContext = Depends(get_tenant_context),
    _auth: None = Depends(
        require_roles(*VIEW_ROLES, message="You don't have permission to view employees")
    ),
):
    q = (
        select(Employee)
        .join(User, Employee.user_id == User.id)
        .outerjoin(Department, Employee.department_id == Department.id)
        .where(User.company_id == ctx.company_id)
    )
    if department_id:
        dept_key = parse_uuid(department_id)
        q = q.where(Employee.department_id == dept_key if dept_key else false())
    if status_filter:
        q = q.where(Employee.status == status_filter)
    if search:
        term = f"%{search.strip()}%"
        q = q.where(
            or_(
                Employee.employee_code.ilike(term),
                User.name.ilike(term),
                User.email.ilike(term),
                Employee.position.ilike(term),
                Department.name.ilike(term),
            )
        )
    # Managers only see their direct reports
    if ctx.role == "manager":
        q = q.where(Employee.manager_id == ctx.user_id)

    result = await ctx.db.execute(q.order_by(Employee.created_at.desc()))
    emps = list(result.unique().scalars().all())
    return {
        "success": True,
        "employees": await _to_responses(ctx.db, emps),
        "total": len(emps),
    }


@router.get("/{employee_id}")
async def get_employee(
    employee_id: str,
    ctx: TenantContext = Depends(get_tenant_context),
    _auth: None = Depends(
        require_roles(*VIEW_ROLES, message="You don't have permission to view employee details")
    ),
):
    emp = await resources.employees(ctx.db).get(employee_id, ctx.company_id, action="view")
    if ctx.role == "manager" and emp.manager_id != ctx.user_id:
        raise Forbidden("You don't have permission to view this employee")

    (response,) = await _to_responses(ctx.db, [emp])
    return {"success": True, "employee": response}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_employee(
    body: EmployeeCreate,
    ctx: TenantContext = Depends(get_tenant_context),
    _auth: None = Depends(
        require_roles(*ADMIN_ROLES, message="You don't have permission to create employees")
    ),
):
    db = ctx.db
    if not body.user_id:
        raise ValidationError("User ID is required")

    users = resources.users(db)
    user_id = await users.resolve_reference(body.user_id, ctx.company_id, strict=True)
    user = await db.get(User, user_id)

    existing = await db.execute(select(Employee.id).where(Employee.user_id == user_id))
    if existing.first() is not None:
        raise Conflict("Employee record already exists for this user")

    department_id = await resources.departments(db).resolve_reference(
        body.department_id, ctx.company_id, field="department", lock=FOR_SHARE
    )
    manager_id = await users.resolve_reference(body.manager_id, ctx.company_id, field="manager")

    fields = supplied(body)
    fields.pop("user_id")
    _nested(body, fields)
    fields.update(
        department_id=department_id,
        manager_id=manager_id,
        hire_date=body.hire_date or datetime.utcnow(),
        employment_type=body.employment_type or "full-time",
        skills=body.skills or [],
    )

    staged = Employee()
    merge_partial(staged, fields, clearable=CLEARABLE_FIELDS, transforms=TRANSFORMS)
    values = {
        field: getattr(staged, field)
        for field in fields
        if getattr(staged, field) is not None
    }

    try:
        emp = await create_employee_record(db, user, **values)
    except IntegrityError:
        raise Conflict("Employee record already exists for this user")

    await create_audit_log(
        db,
        company_id=str(ctx.company_id),
        actor_id=str(ctx.user_id),
        action="EMPLOYEE_CREATED",
        entity_type="EMPLOYEE",
        entity_id=str(emp.id),
        after_state=snapshot(emp),
        actor_email=ctx.email,
    )

    (response,) = await _to_responses(db, [emp])
    return {
        "success": True,
        "message": "Employee created successfully",
        "employee": response,
    }


@router.put("/{employee_id}")
async def update_employee(
    employee_id: str,
    body: EmployeeUpdate,
    ctx: TenantContext = Depends(get_tenant_context),
    _auth: None = Depends(
        require_roles(*ADMIN_ROLES, message="You don't have permission to update employees")
    ),
):
    db = ctx.db
    emp = await resources.employees(db).get(employee_id, ctx.company_id, action="update")
    changes = supplied(body)

    if "department_id" in changes:
        changes["department_id"] = await resources.departments(db).resolve_reference(
            changes["department_id"], ctx.company_id, field="department", lock=FOR_SHARE
        )
    if "manager_id" in changes:
        changes["manager_id"] = await resources.users(db).resolve_reference(
            changes["manager_id"], ctx.company_id, field="manager"
        )
    _nested(body, changes)

    before = snapshot(emp)
    changed = merge_partial(emp, changes, clearable=CLEARABLE_FIELDS, transforms=TRANSFORMS)
    await db.flush()

    if changed:
        await create_audit_log(
            db,
            company_id=str(ctx.company_id),
            actor_id=str(ctx.user_id),
            action="EMPLOYEE_UPDATED",
            entity_type="EMPLOYEE",
            entity_id=str(emp.id),
            before_state=before,
            after_state=snapshot(emp),
            actor_email=ctx.email,
        )
    logger.info("employee_updated", employee_id=str(emp.id), changed=changed)

    (response,) = await _to_responses(db, [emp])
    return {
        "success": True,
        "message": "Employee updated successfully",
        "employee": response,
    }


@router.delete("/{employee_id}")
async def delete_employee(
    employee_id: str,
    ctx: TenantContext = Depends(get_tenant_context),
    _auth: None = Depends(
        require_roles(*ADMIN_ROLES, message="You don't have permission to delete employees")
    ),
):
    db = ctx.db
    emp = await resources.employees(db).get(employee_id, ctx.company_id, action="delete")

    before = snapshot(emp)
    soft_delete(emp, "terminated")
    await db.flush()

    await create_audit_log(
        db,
        company_id=str(ctx.company_id),
        actor_id=str(ctx.user_id),
        action="EMPLOYEE_TERMINATED",
        entity_type="EMPLOYEE",
        entity_id=str(emp.id),
        before_state=before,
        after_state=snapshot(emp),
        actor_email=ctx.email,
    )
    logger.info("employee_terminated", employee_id=str(emp.id))

    return {"success": True, "message": "Employee record deleted successfully"}
