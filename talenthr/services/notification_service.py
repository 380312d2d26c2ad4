"""
Notification service: template rendering + dispatch via email.

Callers schedule ``send_notification`` on FastAPI ``BackgroundTasks`` so a
mail outage never fails the request that triggered it.
"""

import structlog

from talenthr.config import settings
from talenthr.services.email_service import send_email

logger = structlog.get_logger()

# ---------- Template registry ----------

TEMPLATES = {
    "otp_code": {
        "subject": "Your {app_name} verification code",
        "html": (
            "<h2>Verify your email</h2>"
            "<p>Your verification code is:</p>"
            "<p style='font-size:28px;letter-spacing:6px'><strong>{code}</strong></p>"
            "<p>This code expires in {expires_minutes} minutes. "
            "If you did not request it, you can ignore this email.</p>"
        ),
    },
    "invitation": {
        "subject": "You're invited to join {company_name} on {app_name}",
        "html": (
            "<h2>You've been invited</h2>"
            "<p><strong>{inviter_name}</strong> invited you to join "
            "<strong>{company_name}</strong> as <strong>{role_label}</strong>.</p>"
            "<p><a href='{invitation_link}'>Accept invitation</a></p>"
            "<p>This link expires on {expires_at}.</p>"
        ),
    },
    "welcome": {
        "subject": "Welcome to {app_name}",
        "html": (
            "<h2>Welcome, {name}!</h2>"
            "<p>Your account at <strong>{company_name}</strong> is ready.</p>"
            "<p><a href='{app_url}/login'>Sign in</a></p>"
        ),
    },
}

ROLE_LABELS = {
    "company_admin": "Company Admin",
    "hr_manager": "HR Manager",
    "recruiter": "Recruiter",
    "manager": "Manager",
    "employee": "Employee",
}


async def send_notification(
    template_id: str,
    recipient_emails: list[str],
    context: dict,
) -> bool:
    """Render a template and dispatch it. Returns the delivery result."""
    template = TEMPLATES.get(template_id)
    if not template:
        logger.warning("notification_template_not_found", template_id=template_id)
        return False

    if not recipient_emails:
        logger.warning("notification_no_recipients", template_id=template_id)
        return False

    context = {"app_name": settings.APP_NAME, "app_url": settings.APP_URL, **context}
    if "role" in context and "role_label" not in context:
        context["role_label"] = ROLE_LABELS.get(context["role"], context["role"])

    try:
        subject = template["subject"].format(**context)
        html = template["html"].format(**context)
    except KeyError as e:
        logger.error("notification_template_render_error", template_id=template_id, missing_key=str(e))
        return False

    result = await send_email(list(recipient_emails), subject, html)

    logger.info(
        "notification_sent",
        template_id=template_id,
        recipients=recipient_emails,
        success=result,
    )
    return result
