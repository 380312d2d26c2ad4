"""
Tenant-scoped CRUD guards shared by every resource route.

* ``TenantScopedResource.get``: fetch by id; missing is 404, another
  company's row is 403.
* ``TenantScopedResource.resolve_reference``: validate an id stored on
  another record (parent department, manager, job posting ...) belongs to
  the caller's company.
* ``guard_dependents`` + ``soft_delete``: refuse to retire a record while
  active dependents point at it, otherwise flip its status.
* ``merge_partial``: apply only the fields a PUT actually supplied.

The helpers never commit; the request-scoped session owns the transaction.
"""

from dataclasses import dataclass
from operator import attrgetter
from typing import Any, Awaitable, Callable, Iterable, Mapping, Optional, Union
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from talenthr.errors import DependencyExists, Forbidden, NotFound, ValidationError

# Passed straight to Session.get(with_for_update=...):
# True -> FOR UPDATE, {"read": True} -> FOR SHARE.
LockMode = Union[bool, dict, None]

FOR_UPDATE: LockMode = True
FOR_SHARE: LockMode = {"read": True}

Fetcher = Callable[[uuid.UUID, LockMode], Awaitable[Optional[Any]]]


def parse_uuid(value) -> Optional[uuid.UUID]:
    """Coerce a path/body id to UUID. Malformed ids come back as None."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError, AttributeError):
        return None


def session_fetcher(db: AsyncSession, model) -> Fetcher:
    """Primary-key fetcher bound to a session and model."""

    async def fetch(entity_id: uuid.UUID, lock: LockMode = None):
        return await db.get(model, entity_id, with_for_update=lock or None)

    return fetch


async def count_rows(db: AsyncSession, model, *criteria) -> int:
    result = await db.execute(
        select(func.count()).select_from(model).where(*criteria)
    )
    return result.scalar_one()


class TenantScopedResource:
    """
    Tenant-aware accessor for one entity type.

    ``label`` is the human name used in error messages ("Department").
    ``tenant_of`` extracts the owning company id from a fetched entity; the
    default reads ``company_id`` which employees expose through their user.
    """

    def __init__(
        self,
        label: str,
        fetch: Fetcher,
        tenant_of: Callable[[Any], Any] = attrgetter("company_id"),
    ):
        self.label = label
        self.fetch = fetch
        self.tenant_of = tenant_of

    def _same_tenant(self, entity, tenant_id) -> bool:
        return str(self.tenant_of(entity)) == str(tenant_id)

    async def get(
        self,
        entity_id,
        tenant_id,
        action: str = "access",
        lock: LockMode = None,
    ):
        key = parse_uuid(entity_id)
        entity = await self.fetch(key, lock) if key is not None else None
        if entity is None:
            raise NotFound(f"{self.label} not found")
        if not self._same_tenant(entity, tenant_id):
            raise Forbidden(
                f"You don't have permission to {action} this {self.label.lower()}"
            )
        return entity

    async def resolve_reference(
        self,
        ref_id,
        tenant_id,
        field: Optional[str] = None,
        self_id=None,
        lock: LockMode = None,
        strict: bool = False,
    ) -> Optional[uuid.UUID]:
        """
        Validate a reference and return it as a UUID.

        Empty references return None ("unset") without a lookup. In the
        default mode every failure is a 400 "Invalid <field>"; ``strict``
        distinguishes a missing target (404) from a foreign one (403).
        ``self_id`` rejects a record pointing at itself before any lookup.
        """
        if ref_id is None or ref_id == "":
            return None

        field = field or self.label.lower()
        key = parse_uuid(ref_id)

        if self_id is not None and key is not None and key == parse_uuid(self_id):
            raise ValidationError(f"{self.label} cannot be its own parent")

        target = await self.fetch(key, lock) if key is not None else None
        if strict:
            if target is None:
                raise NotFound(f"{self.label} not found")
            if not self._same_tenant(target, tenant_id):
                raise Forbidden(f"{self.label} does not belong to your company")
        elif target is None or not self._same_tenant(target, tenant_id):
            raise ValidationError(f"Invalid {field}")
        return key


# ---------- soft delete ----------

@dataclass(frozen=True)
class DependencyCheck:
    """A counter of live dependents and the message used when it is non-zero.

    ``message`` is formatted with ``count``.
    """

    count: Callable[[Any], Awaitable[int]]
    message: str


async def guard_dependents(entity, checks: Iterable[DependencyCheck]) -> None:
    """Raise DependencyExists on the first check with live dependents."""
    for check in checks:
        n = await check.count(entity)
        if n > 0:
            raise DependencyExists(check.message.format(count=n))


def soft_delete(entity, status: str = "inactive") -> None:
    entity.status = status


# ---------- partial update ----------

def merge_partial(
    entity,
    changes: Mapping[str, Any],
    clearable: Iterable[str] = (),
    transforms: Optional[Mapping[str, Callable[[Any], Any]]] = None,
) -> list[str]:
    """
    Apply the supplied fields of a PUT body onto ``entity``.

    ``changes`` must contain only the keys the client sent. For ``clearable``
    (optional) fields a falsy value ("", 0, None) unsets the attribute.
    Other fields ignore None and "". ``transforms`` normalize kept values.
    Returns the names of attributes whose value actually changed.
    """
    clearable = set(clearable)
    transforms = transforms or {}
    changed = []

    for field, value in changes.items():
        if field in clearable:
            if not value:
                value = None
        elif value is None or value == "":
            continue

        if value is not None and field in transforms:
            value = transforms[field](value)

        if getattr(entity, field) != value:
            setattr(entity, field, value)
            changed.append(field)

    return changed
