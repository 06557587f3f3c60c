"""
Celery worker for outbound e-mail (password reset links).
"""
from celery import Celery
import requests
import logging
from .config import settings

logger = logging.getLogger(__name__)

celery_app = Celery(
    "equiptrack",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND
)

celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,
    # Inline execution for tests / single-process deployments.
    task_always_eager=settings.CELERY_TASK_ALWAYS_EAGER,
    task_eager_propagates=True,
)


def _reset_email_body(*, first_name: str | None, reset_link: str, expires_at: str) -> str:
    greeting = f"Hello {first_name}," if first_name else "Hello,"
    return (
        f"{greeting}\n\n"
        "A password reset was requested for your account.\n"
        f"Open the link below to choose a new password (valid until {expires_at} UTC):\n\n"
        f"{reset_link}\n\n"
        "If you did not request this, you can ignore this message.\n"
    )


def send_email(to: str, subject: str, body: str) -> tuple[bool, str | None]:
    """Send message via the configured HTTP e-mail API."""
    if not settings.EMAIL_API_URL:
        return False, "EMAIL_API_URL not configured"

    headers = {}
    if settings.EMAIL_API_TOKEN:
        headers["Authorization"] = f"Bearer {settings.EMAIL_API_TOKEN}"

    try:
        response = requests.post(
            settings.EMAIL_API_URL,
            json={"from": settings.EMAIL_FROM, "to": to, "subject": subject, "text": body},
            headers=headers,
            timeout=10
        )

        if 200 <= response.status_code < 300:
            return True, None
        elif response.status_code == 429:
            return False, f"RATE_LIMIT:{response.headers.get('Retry-After', '60')}"
        else:
            return False, f"HTTP_{response.status_code}: {response.text[:200]}"

    except requests.RequestException as e:
        return False, f"EXCEPTION: {str(e)}"


@celery_app.task(name="send_password_reset_email")
def send_password_reset_email(
    to: str,
    reset_link: str,
    expires_at: str,
    first_name: str | None = None,
    last_name: str | None = None,
):
    """Deliver a reset link; simulated (logged) when EMAIL_ENABLED is off."""
    if not settings.EMAIL_ENABLED:
        # The link itself is a credential: never write it to logs.
        logger.info("Simulated password reset e-mail to %s (expires %s)", to, expires_at)
        return {"sent": False, "simulated": True}

    body = _reset_email_body(first_name=first_name, reset_link=reset_link, expires_at=expires_at)
    success, error = send_email(to, "Password reset", body)
    if success:
        logger.info("Password reset e-mail sent to %s", to)
    else:
        logger.error("Password reset e-mail to %s failed: %s", to, error)
    return {"sent": success, "simulated": False, "error": error}
