"""
Outbound email.

Everything the app sends (automation steps, campaigns, task reminders) goes
through send_system_email(). The transport is Django's configured
EMAIL_BACKEND; delivery errors propagate to the caller.
"""
import logging

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.utils.html import escape, strip_tags

from crm.utils import utcnow

logger = logging.getLogger(__name__)


def render_email_layout(title: str, body: str) -> str:
    """Wrap an HTML body fragment in the branded email shell."""
    return f"""
  <div style="font-family: Arial, sans-serif; padding: 24px; color: #0f172a;">
    <h2 style="color:#0f172a">{escape(title)}</h2>
    <div style="line-height:1.6;font-size:16px;color:#1e293b">{body}</div>
    <p style="margin-top:32px;color:#94a3b8;font-size:12px;">
      &copy; {utcnow().year} SimpleAutomate &middot; simpleautomate.co.uk
    </p>
  </div>
"""


def send_system_email(to: str, subject: str, html: str, reply_to: str | None = None) -> None:
    message = EmailMultiAlternatives(
        subject=subject,
        body=strip_tags(html).strip(),
        from_email=settings.EMAIL_FROM,
        to=[to],
        reply_to=[reply_to] if reply_to else None,
    )
    message.attach_alternative(html, "text/html")
    message.send(fail_silently=False)
    logger.info("Sent email to %s: %s", to, subject)
