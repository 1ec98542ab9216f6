"""
Outbound invitation email through Resend.

Sending is fire-and-forget: failures are logged and reported as ``False``,
never raised into the request that triggered them.
"""
import logging
from html import escape

from app.core.config import settings

logger = logging.getLogger(__name__)

_resend_client = None


def _get_resend():
    """Get or initialize the Resend client."""
    global _resend_client
    if _resend_client is None:
        if not settings.RESEND_API_KEY:
            logger.warning("RESEND_API_KEY not configured. Emails will not be sent.")
            return None
        import resend

        resend.api_key = settings.RESEND_API_KEY
        _resend_client = resend
    return _resend_client


def send_invitation_email(to: str, link: str, calendar_name: str | None = None) -> bool:
    """Send an invitation to join a calendar."""
    if settings.ENVIRONMENT in ("local", "development"):
        logger.info("[DEV] Invitation for %s: %s", to, link)

    resend = _get_resend()
    if resend is None:
        logger.info("Invitation email not sent (Resend not configured) to %s", to)
        return False

    target = f" <strong>{escape(calendar_name)}</strong>" if calendar_name else ""
    params = {
        "from": settings.INVITE_FROM_EMAIL,
        "to": [to],
        "subject": "You are invited to a calendar!",
        "html": (
            f"<p>You have been invited to join the calendar{target}. "
            f'Click <a href="{escape(link, quote=True)}">here</a> to join.</p>'
        ),
    }
    try:
        resend.Emails.send(params)
    except Exception as exc:
        logger.error("Failed to send invitation email to %s: %s", to, exc)
        return False

    logger.info("Invitation email sent via Resend to %s", to)
    return True
