"""Central model registry. Import all models so Alembic autodiscover works."""

from talenthr.database import Base  # noqa: F401

from talenthr.models.company import Company  # noqa: F401
from talenthr.models.user import User  # noqa: F401
from talenthr.models.department import Department  # noqa: F401
from talenthr.models.employee import Employee  # noqa: F401
from talenthr.models.invitation import Invitation  # noqa: F401
from talenthr.models.otp import OtpCode  # noqa: F401
from talenthr.models.job_posting import JobPosting  # noqa: F401
from talenthr.models.candidate import Candidate  # noqa: F401
from talenthr.models.interview import Interview  # noqa: F401
from talenthr.models.audit_log import AuditLog  # noqa: F401
