"""
Email campaign dispatch.

Campaigns without a schedule are sent when created; scheduled ones are
picked up by process_scheduled_campaigns() on the periodic sweep.
"""
import logging
from datetime import datetime

from crm.models.campaign import (
    EmailCampaign, EmailCampaignRecipient, CampaignStatus, RecipientStatus,
)
from crm.services.email import render_email_layout, send_system_email
from crm.utils import utcnow

logger = logging.getLogger(__name__)


def send_campaign_email(campaign: EmailCampaign, recipient: EmailCampaignRecipient) -> str:
    contact = recipient.contact
    if not contact.email:
        recipient.status = RecipientStatus.BOUNCED
        recipient.save(update_fields=["status"])
        return RecipientStatus.BOUNCED

    send_system_email(
        to=contact.email,
        subject=campaign.subject,
        html=render_email_layout(campaign.name, campaign.body),
    )

    recipient.status = RecipientStatus.SENT
    recipient.sent_at = utcnow()
    recipient.save(update_fields=["status", "sent_at"])
    return RecipientStatus.SENT


def dispatch_campaign_now(campaign_id) -> EmailCampaign | None:
    campaign = EmailCampaign.objects.filter(id=campaign_id).first()
    if campaign is None:
        return None

    recipients = campaign.recipients.filter(status=RecipientStatus.PENDING).select_related("contact")
    sent = 0
    for recipient in recipients:
        if send_campaign_email(campaign, recipient) == RecipientStatus.SENT:
            sent += 1

    campaign.status = CampaignStatus.SENT
    campaign.save(update_fields=["status", "updated_at"])
    logger.info("Campaign %s sent to %d recipient(s)", campaign.id, sent)
    return campaign


def claim_campaign(campaign_id) -> bool:
    """Atomically move a SCHEDULED campaign to SENDING. False if another sweep got it first."""
    return bool(
        EmailCampaign.objects
        .filter(id=campaign_id, status=CampaignStatus.SCHEDULED)
        .update(status=CampaignStatus.SENDING)
    )


def process_scheduled_campaigns(now: datetime | None = None) -> int:
    """
    Dispatch every SCHEDULED campaign whose time has come. Each campaign is
    claimed with a conditional SCHEDULED → SENDING update first, so overlapping
    sweeps send it once. Returns the number dispatched by this call.
    """
    now = now or utcnow()
    due = list(
        EmailCampaign.objects
        .filter(status=CampaignStatus.SCHEDULED, scheduled_for__lte=now)
        .values_list("id", flat=True)
    )

    dispatched = 0
    for campaign_id in due:
        if not claim_campaign(campaign_id):
            logger.info("Campaign %s already picked up by another sweep", campaign_id)
            continue
        dispatch_campaign_now(campaign_id)
        dispatched += 1

    return dispatched
