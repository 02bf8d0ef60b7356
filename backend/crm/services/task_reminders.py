"""Task due-date reminders, sent once per task by the periodic sweep."""
import logging
from datetime import datetime, timedelta

from django.utils.html import escape

from crm.models.task import Task
from crm.services.email import render_email_layout, send_system_email
from crm.utils import utcnow

logger = logging.getLogger(__name__)

REMINDER_WINDOW = timedelta(hours=24)


def claim_reminder(task: Task) -> bool:
    """Flip notification_sent only if nobody else has; False when another sweep got there first."""
    return bool(
        Task.objects
        .filter(pk=task.pk, notification_sent=False)
        .update(notification_sent=True)
    )


def send_task_notifications(now: datetime | None = None) -> int:
    """
    Email each tenant about open tasks due within 24 hours, once per task.
    The reminder is claimed before sending; a failed send releases the
    claim so the next sweep tries again.
    """
    now = now or utcnow()
    tasks = (
        Task.objects
        .filter(completed=False, notification_sent=False, due_date__lte=now + REMINDER_WINDOW)
        .select_related("user", "contact")
    )

    sent = 0
    for task in tasks:
        if not task.user.email:
            continue
        if not claim_reminder(task):
            continue

        about = f" for {escape(task.contact.name)}" if task.contact else ""
        due = task.due_date.strftime("%Y-%m-%d %H:%M")
        try:
            send_system_email(
                to=task.user.email,
                subject=f"Task due soon: {task.title}",
                html=render_email_layout(
                    "Task Reminder",
                    f"Task <strong>{escape(task.title)}</strong>{about} is due {due}.",
                ),
            )
        except Exception:
            Task.objects.filter(pk=task.pk).update(notification_sent=False)
            raise
        sent += 1

    if sent:
        logger.info("Sent %d task reminder(s)", sent)
    return sent
