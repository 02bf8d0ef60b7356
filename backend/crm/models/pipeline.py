import uuid
from django.conf import settings
from django.db import models


class Pipeline(models.Model):
    """A tenant's Kanban board. Stages are ordered left-to-right by position."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="pipelines")
    name = models.CharField(max_length=200)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "pipelines"
        ordering = ["created_at"]

    def __str__(self):
        return self.name


class Stage(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    pipeline = models.ForeignKey("Pipeline", on_delete=models.CASCADE, related_name="stages")
    name = models.CharField(max_length=100)
    position = models.IntegerField(default=0)

    class Meta:
        db_table = "stages"
        ordering = ["position"]

    def __str__(self):
        return f"{self.name} (#{self.position})"


class ContactStage(models.Model):
    """
    Append-only stage assignment history. A contact's current stage is the
    row with the latest assigned_at; rows are never mutated.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    contact = models.ForeignKey("Contact", on_delete=models.CASCADE, related_name="stage_assignments")
    stage = models.ForeignKey("Stage", on_delete=models.CASCADE, related_name="assignments")
    assigned_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "contact_stages"
        ordering = ["-assigned_at"]
        indexes = [
            models.Index(fields=["contact", "-assigned_at"], name="idx_contactstage_latest"),
        ]

    def __str__(self):
        return f"contact={self.contact_id} → stage={self.stage_id} @ {self.assigned_at}"
