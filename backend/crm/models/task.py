import uuid
from django.conf import settings
from django.db import models


class Task(models.Model):
    """A tenant to-do, optionally about one contact. Reminded once, 24h before due."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="tasks")
    contact = models.ForeignKey(
        "Contact", on_delete=models.SET_NULL, null=True, blank=True, related_name="tasks"
    )

    title = models.CharField(max_length=300)
    due_date = models.DateTimeField(null=True, blank=True)
    completed = models.BooleanField(default=False)
    notification_sent = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "tasks"
        ordering = ["due_date"]
        indexes = [
            models.Index(fields=["completed", "notification_sent", "due_date"], name="idx_task_reminder"),
        ]

    def __str__(self):
        done = "done" if self.completed else "open"
        return f"{self.title} ({done})"
