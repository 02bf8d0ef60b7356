import uuid
from django.conf import settings
from django.db import models


class CampaignStatus(models.TextChoices):
    DRAFT = "DRAFT"
    SCHEDULED = "SCHEDULED"
    SENDING = "SENDING"
    SENT = "SENT"


class RecipientStatus(models.TextChoices):
    PENDING = "PENDING"
    SENT = "SENT"
    BOUNCED = "BOUNCED"


class EmailCampaign(models.Model):
    """
    A one-shot broadcast to a fixed recipient list. Sent immediately on
    creation, or by the periodic sweep once scheduled_for has passed.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="email_campaigns")

    name = models.CharField(max_length=200)
    subject = models.CharField(max_length=300)
    body = models.TextField()

    status = models.CharField(max_length=20, choices=CampaignStatus.choices, default=CampaignStatus.DRAFT)
    scheduled_for = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "email_campaigns"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "scheduled_for"], name="idx_campaign_status_sched"),
        ]

    def __str__(self):
        return f"{self.name} ({self.status})"


class EmailCampaignRecipient(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    campaign = models.ForeignKey("EmailCampaign", on_delete=models.CASCADE, related_name="recipients")
    contact = models.ForeignKey("Contact", on_delete=models.CASCADE, related_name="campaign_receipts")

    status = models.CharField(max_length=20, choices=RecipientStatus.choices, default=RecipientStatus.PENDING)
    sent_at = models.DateTimeField(null=True, blank=True)
    opened_at = models.DateTimeField(null=True, blank=True)
    clicked_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "email_campaign_recipients"

    def __str__(self):
        return f"campaign={self.campaign_id} contact={self.contact_id} ({self.status})"
