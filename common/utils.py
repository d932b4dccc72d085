# common/utils.py
import logging
import smtplib

from django.conf import settings
from django.core.mail import send_mail

log = logging.getLogger(__name__)


def send_email_and_log(subject: str, message: str, to_email: str, html_message=None) -> bool:
    """
    Helper: send one email, log the outcome. Returns True on success.
    """
    if not to_email:
        return False

    try:
        send_mail(
            subject,
            message,
            settings.DEFAULT_FROM_EMAIL,
            [to_email],
            html_message=html_message,
            fail_silently=False,
        )
    except (smtplib.SMTPException, OSError):
        log.warning("Email %r to %s failed", subject, to_email, exc_info=True)
        return False

    log.info("Email %r sent to %s", subject, to_email)
    return True
