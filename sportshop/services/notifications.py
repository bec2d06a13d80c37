"""
Order notification emails.

Every send is best effort: the return value says whether the message went out
and callers surface it as ``emailSent`` instead of failing the request.
"""
import logging
import smtplib
from email.mime.text import MIMEText
from typing import Callable, Dict, Optional

from sportshop.config import get_settings
from sportshop.utils import email_templates

logger = logging.getLogger(__name__)


def send_email(to_email: str, subject: str, body: str) -> bool:
    """Send one plain-text email through the configured backend.

    EMAIL_BACKEND=console (the default) only logs the message. SMTP needs
    ADMIN_EMAIL and ADMIN_EMAIL_PASSWORD; without them the console backend is used.
    """
    settings = get_settings()
    use_smtp = settings.EMAIL_BACKEND == "smtp"
    if use_smtp and not (settings.ADMIN_EMAIL and settings.ADMIN_EMAIL_PASSWORD):
        logger.warning("EMAIL_BACKEND=smtp but sender credentials are missing, logging email instead")
        use_smtp = False
    if not use_smtp:
        logger.info("[EMAIL:console] To=%s Subject=%s Body=%s", to_email, subject, body)
        return True

    message = MIMEText(body)
    message["Subject"] = subject
    message["From"] = settings.ADMIN_EMAIL
    message["To"] = to_email
    try:
        with smtplib.SMTP(settings.SMTP_SERVER, settings.SMTP_PORT, timeout=20) as server:
            server.starttls()
            server.login(settings.ADMIN_EMAIL, settings.ADMIN_EMAIL_PASSWORD)
            server.send_message(message)
    except (smtplib.SMTPException, OSError) as e:
        logger.error("SMTP delivery to %s failed: %s", to_email, e, exc_info=True)
        return False
    logger.info("Email sent via SMTP to %s", to_email)
    return True


class EmailNotifier:
    """Renders order templates and hands them to the configured mail backend"""

    def __init__(self, sender: Callable[[str, str, str], bool] = send_email, enabled: Optional[bool] = None):
        self.sender = sender
        self.enabled = get_settings().ENABLE_EMAIL_NOTIFICATIONS if enabled is None else enabled

    def _deliver(self, email: Optional[str], template: Dict[str, str]) -> bool:
        if not self.enabled:
            logger.info("Email notifications disabled, skipping '%s'", template["subject"])
            return False
        if not email:
            logger.warning("No recipient for '%s'", template["subject"])
            return False
        try:
            return bool(self.sender(email, template["subject"], template["body"]))
        except Exception as e:
            logger.error("Email '%s' to %s failed: %s", template["subject"], email, e, exc_info=True)
            return False

    def send_cancellation_email(self, email: str, order_id: int, reason: Optional[str] = None) -> bool:
        return self._deliver(email, email_templates.order_cancellation(order_id, reason))

    def send_refund_request_email(self, email: str, order_id: int, reason: Optional[str] = None) -> bool:
        return self._deliver(email, email_templates.refund_request(order_id, reason))

    def send_refund_success_email(self, email: str, order_id: int, reason: Optional[str] = None) -> bool:
        return self._deliver(email, email_templates.refund_success(order_id))

    def send_refund_failed_email(self, email: str, order_id: int, reason: Optional[str] = None) -> bool:
        return self._deliver(email, email_templates.refund_failed(order_id, reason))
