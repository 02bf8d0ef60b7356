import uuid
from django.conf import settings
from django.db import models


class EmailTemplate(models.Model):
    """Reusable subject/body pair. SEND_EMAIL steps may reference one by id."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="email_templates")

    name = models.CharField(max_length=200)
    subject = models.CharField(max_length=300)
    body = models.TextField()  # HTML fragment

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "email_templates"
        ordering = ["-updated_at"]

    def __str__(self):
        return self.name
