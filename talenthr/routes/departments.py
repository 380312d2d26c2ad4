from decimal import Decimal
from typing import Optional
import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from talenthr.errors import Conflict
from talenthr.middleware.authorization import ADMIN_ROLES, require_roles
from talenthr.middleware.tenant import TenantContext, get_tenant_context
from talenthr.models.department import Department
from talenthr.models.employee import Employee
from talenthr.models.user import User
from talenthr.schemas.common import DepartmentRef, UserRef, supplied
from talenthr.schemas.department import (
    DepartmentCreate,
    DepartmentResponse,
    DepartmentSummary,
    DepartmentUpdate,
)
from talenthr.services import resources
from talenthr.services.audit_service import create_audit_log, snapshot
from talenthr.services.guards import (
    FOR_SHARE,
    FOR_UPDATE,
    DependencyCheck,
    count_rows,
    guard_dependents,
    merge_partial,
    soft_delete,
)

logger = structlog.get_logger()
router = APIRouter()

CLEARABLE_FIELDS = (
    "code",
    "description",
    "parent_department_id",
    "manager_id",
    "budget",
    "location",
)

TRANSFORMS = {
    "name": str.strip,
    "code": lambda v: v.strip().upper(),
    "description": str.strip,
    "location": str.strip,
    "budget": lambda v: Decimal(str(v)),
}


def dependency_checks(db: AsyncSession) -> list[DependencyCheck]:
    return [
        DependencyCheck(
            count=lambda d: count_rows(
                db, Employee, Employee.department_id == d.id, Employee.status == "active"
            ),
            message=(
                "Cannot delete department. It has {count} active employee(s). "
                "Please reassign them first."
            ),
        ),
        DependencyCheck(
            count=lambda d: count_rows(
                db,
                Department,
                Department.parent_department_id == d.id,
                Department.status == "active",
            ),
            message=(
                "Cannot delete department. It has {count} sub-department(s). "
                "Please delete or reassign them first."
            ),
        ),
    ]


async def _ensure_name_available(
    db: AsyncSession,
    company_id: uuid.UUID,
    name: str,
    exclude_id: Optional[uuid.UUID] = None,
) -> None:
    q = select(Department.id).where(
        Department.company_id == company_id,
        Department.name == name,
        Department.status == "active",
    )
    if exclude_id is not None:
        q = q.where(Department.id != exclude_id)
    if (await db.execute(q)).first() is not None:
        raise Conflict("Department with this name already exists")


async def _flush(db: AsyncSession) -> None:
    """Flush, mapping a lost race on the active-name index to 409."""
    try:
        await db.flush()
    except IntegrityError as e:
        logger.warning("department_name_conflict", error=str(e.orig))
        raise Conflict("Department with this name already exists")


async def _to_responses(db: AsyncSession, depts: list[Department]) -> list[DepartmentResponse]:
    parent_ids = {d.parent_department_id for d in depts if d.parent_department_id}
    manager_ids = {d.manager_id for d in depts if d.manager_id}

    parents = {}
    if parent_ids:
        rows = await db.execute(select(Department).where(Department.id.in_(parent_ids)))
        parents = {p.id: p for p in rows.scalars()}
    managers = {}
    if manager_ids:
        rows = await db.execute(select(User).where(User.id.in_(manager_ids)))
        managers = {m.id: m for m in rows.scalars()}

    out = []
    for d in depts:
        parent = parents.get(d.parent_department_id)
        manager = managers.get(d.manager_id)
        out.append(
            DepartmentResponse(
                id=str(d.id),
                name=d.name,
                code=d.code,
                description=d.description,
                parent_department=(
                    DepartmentRef(id=str(parent.id), name=parent.name, code=parent.code)
                    if parent else None
                ),
                manager=(
                    UserRef(id=str(manager.id), name=manager.name, email=manager.email)
                    if manager else None
                ),
                budget=float(d.budget) if d.budget is not None else None,
                location=d.location,
                status=d.status,
                created_at=d.created_at,
                updated_at=d.updated_at,
            )
        )
    return out


def _summary(d: Department) -> DepartmentSummary:
    return DepartmentSummary(id=str(d.id), name=d.name, code=d.code, status=d.status)


@router.get("")
async def list_departments(
    status_filter: Optional[str] = Query(None, alias="status"),
    ctx: TenantContext = Depends(get_tenant_context),
):
    q = select(Department).where(Department.company_id == ctx.company_id)
    if status_filter:
        q = q.where(Department.status == status_filter)
    result = await ctx.db.execute(q.order_by(Department.name))
    depts = list(result.scalars().all())
    return {
        "success": True,
        "departments": await _to_responses(ctx.db, depts),
        "total": len(depts),
    }


@router.get("/{department_id}")
async def get_department(
    department_id: str,
    ctx: TenantContext = Depends(get_tenant_context),
):
    dept = await resources.departments(ctx.db).get(
        department_id, ctx.company_id, action="view"
    )
    (response,) = await _to_responses(ctx.db, [dept])
    return {"success": True, "department": response}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_department(
    body: DepartmentCreate,
    ctx: TenantContext = Depends(get_tenant_context),
    _auth: None = Depends(
        require_roles(*ADMIN_ROLES, message="You don't have permission to create departments")
    ),
):
    db = ctx.db
    await _ensure_name_available(db, ctx.company_id, body.name)

    parent_id = await resources.departments(db).resolve_reference(
        body.parent_department_id, ctx.company_id, field="parent department", lock=FOR_SHARE
    )
    manager_id = await resources.users(db).resolve_reference(
        body.manager_id, ctx.company_id, field="manager"
    )

    dept = Department(company_id=ctx.company_id, status="active")
    merge_partial(
        dept,
        {
            "name": body.name,
            "code": body.code,
            "description": body.description,
            "parent_department_id": parent_id,
            "manager_id": manager_id,
            "budget": body.budget,
            "location": body.location,
        },
        clearable=CLEARABLE_FIELDS,
        transforms=TRANSFORMS,
    )
    db.add(dept)
    await _flush(db)

    await create_audit_log(
        db,
        company_id=str(ctx.company_id),
        actor_id=str(ctx.user_id),
        action="DEPARTMENT_CREATED",
        entity_type="DEPARTMENT",
        entity_id=str(dept.id),
        after_state=snapshot(dept),
        actor_email=ctx.email,
    )
    logger.info("department_created", department_id=str(dept.id), name=dept.name)

    (response,) = await _to_responses(db, [dept])
    return {
        "success": True,
        "message": "Department created successfully",
        "department": response,
    }


@router.put("/{department_id}")
async def update_department(
    department_id: str,
    body: DepartmentUpdate,
    ctx: TenantContext = Depends(get_tenant_context),
    _auth: None = Depends(
        require_roles(*ADMIN_ROLES, message="You don't have permission to update departments")
    ),
):
    db = ctx.db
    departments = resources.departments(db)
    dept = await departments.get(department_id, ctx.company_id, action="update")
    changes = supplied(body)

    new_name = changes.get("name") or dept.name
    reactivating = changes.get("status") == "active" and dept.status != "active"
    if new_name != dept.name or reactivating:
        await _ensure_name_available(db, ctx.company_id, new_name, exclude_id=dept.id)

    if "parent_department_id" in changes:
        changes["parent_department_id"] = await departments.resolve_reference(
            changes["parent_department_id"],
            ctx.company_id,
            field="parent department",
            self_id=dept.id,
            lock=FOR_SHARE,
        )
    if "manager_id" in changes:
        changes["manager_id"] = await resources.users(db).resolve_reference(
            changes["manager_id"], ctx.company_id, field="manager"
        )

    before = snapshot(dept)
    changed = merge_partial(dept, changes, clearable=CLEARABLE_FIELDS, transforms=TRANSFORMS)
    await _flush(db)

    if changed:
        await create_audit_log(
            db,
            company_id=str(ctx.company_id),
            actor_id=str(ctx.user_id),
            action="DEPARTMENT_UPDATED",
            entity_type="DEPARTMENT",
            entity_id=str(dept.id),
            before_state=before,
            after_state=snapshot(dept),
            actor_email=ctx.email,
        )
    logger.info("department_updated", department_id=str(dept.id), changed=changed)

    return {
        "success": True,
        "message": "Department updated successfully",
        "department": _summary(dept),
    }


@router.delete("/{department_id}")
async def delete_department(
    department_id: str,
    ctx: TenantContext = Depends(get_tenant_context),
    _auth: None = Depends(
        require_roles(*ADMIN_ROLES, message="You don't have permission to delete departments")
    ),
):
    db = ctx.db
    # Row lock: new employees/sub-departments referencing this row take a
    # shared lock, so the counts below cannot go stale before the flip.
    dept = await resources.departments(db).get(
        department_id, ctx.company_id, action="delete", lock=FOR_UPDATE
    )
    await guard_dependents(dept, dependency_checks(db))

    before = snapshot(dept)
    soft_delete(dept, "inactive")
    await db.flush()

    await create_audit_log(
        db,
        company_id=str(ctx.company_id),
        actor_id=str(ctx.user_id),
        action="DEPARTMENT_DELETED",
        entity_type="DEPARTMENT",
        entity_id=str(dept.id),
        before_state=before,
        after_state=snapshot(dept),
        actor_email=ctx.email,
    )
    logger.info("department_deleted", department_id=str(dept.id))

    return {"success": True, "message": "Department deleted successfully"}
