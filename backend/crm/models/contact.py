import uuid
from django.conf import settings
from django.db import models


class Contact(models.Model):
    """
    A person in a tenant's CRM. The central entity of the pipeline board:
    stage history, tasks, campaign recipients and automation runs link here.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="contacts")

    name = models.CharField(max_length=200)
    email = models.EmailField(null=True, blank=True)
    phone = models.CharField(max_length=40, null=True, blank=True)

    # Free-text labels; kept duplicate-free by the code that writes them
    tags = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "contacts"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "created_at"], name="idx_contact_user_created"),
        ]

    def __str__(self):
        return f"{self.name} <{self.email or 'no email'}>"

    @property
    def current_stage_assignment(self):
        """The latest stage assignment; history rows are never updated."""
        return self.stage_assignments.select_related("stage").order_by("-assigned_at").first()
