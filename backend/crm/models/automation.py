import uuid
from django.conf import settings
from django.db import models


class TriggerType(models.TextChoices):
    NEW_CONTACT = "NEW_CONTACT"
    STAGE_CHANGE = "STAGE_CHANGE"
    DATE = "DATE"


class StepType(models.TextChoices):
    SEND_EMAIL = "SEND_EMAIL"
    DELAY = "DELAY"
    UPDATE_TAGS = "UPDATE_TAGS"
    MOVE_STAGE = "MOVE_STAGE"


class LogStatus(models.TextChoices):
    QUEUED = "QUEUED"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class Automation(models.Model):
    """
    A tenant-defined workflow: when the trigger fires for a contact, the
    steps run one per poll, in position order.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="automations")

    name = models.CharField(max_length=200)
    active = models.BooleanField(default=True)

    trigger_type = models.CharField(max_length=20, choices=TriggerType.choices)
    # Interpreted per trigger type: {"stageId": ...} or {"offsetDays": n}
    trigger_config = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "automations"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "active", "trigger_type"], name="idx_automation_trigger"),
        ]

    def __str__(self):
        state = "active" if self.active else "paused"
        return f"{self.name} [{self.trigger_type}, {state}]"


class AutomationStep(models.Model):
    """
    One unit of work inside an automation. There is no successor pointer:
    the next step is whichever has the next position.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    automation = models.ForeignKey("Automation", on_delete=models.CASCADE, related_name="steps")

    type = models.CharField(max_length=20, choices=StepType.choices)
    position = models.IntegerField()
    config = models.JSONField(default=dict, blank=True)

    class Meta:
        db_table = "automation_steps"
        ordering = ["position"]
        constraints = [
            models.UniqueConstraint(fields=["automation", "position"], name="uniq_step_position"),
        ]

    def __str__(self):
        return f"{self.type} #{self.position} of automation={self.automation_id}"


class AutomationLog(models.Model):
    """
    Queue entry: one pending or attempted execution of one step for one contact.

    The step is referenced by id, not position. Deleting the step nulls the
    reference and the processor fails the entry instead of running it.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    automation = models.ForeignKey("Automation", on_delete=models.CASCADE, related_name="logs")
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="automation_logs")
    contact = models.ForeignKey(
        "Contact", on_delete=models.SET_NULL, null=True, blank=True, related_name="automation_logs"
    )
    step = models.ForeignKey(
        "AutomationStep", on_delete=models.SET_NULL, null=True, blank=True, related_name="logs"
    )

    status = models.CharField(max_length=20, choices=LogStatus.choices, default=LogStatus.QUEUED)
    # Null means "run on the next poll"
    scheduled_for = models.DateTimeField(null=True, blank=True)
    claimed_at = models.DateTimeField(null=True, blank=True)
    processed_at = models.DateTimeField(null=True, blank=True)
    message = models.TextField(null=True, blank=True)

    timestamp = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = "automation_logs"
        ordering = ["timestamp"]
        indexes = [
            models.Index(fields=["status", "scheduled_for"], name="idx_log_status_sched"),
            models.Index(fields=["automation", "-timestamp"], name="idx_log_automation_date"),
        ]

    def __str__(self):
        return f"{self.status} step={self.step_id} contact={self.contact_id} @ {self.scheduled_for}"
