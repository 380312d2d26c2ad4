from datetime import datetime, timezone
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for request/response bodies: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class UserRef(CamelModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None


class DepartmentRef(CamelModel):
    id: str
    name: str
    code: Optional[str] = None


def _naive_utc(value: datetime) -> datetime:
    # Columns are naive UTC
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


UtcDateTime = Annotated[datetime, AfterValidator(_naive_utc)]


def strip_required(value: str, message: str, min_length: int = 2) -> str:
    value = value.strip()
    if len(value) < min_length:
        raise ValueError(message)
    return value


def supplied(body: BaseModel) -> dict:
    """
    Fields the client actually sent, keyed by attribute name.

    Only top-level keys are filtered; nested models are dumped whole so
    their defaults (e.g. ``SalaryRange.currency``) are kept.
    """
    sent = body.model_fields_set
    return {name: value for name, value in body.model_dump().items() if name in sent}
