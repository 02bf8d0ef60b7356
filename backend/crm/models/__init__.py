from crm.models.contact import Contact
from crm.models.pipeline import Pipeline, Stage, ContactStage
from crm.models.automation import (
    Automation, AutomationStep, AutomationLog,
    TriggerType, StepType, LogStatus,
)
from crm.models.email_template import EmailTemplate
from crm.models.campaign import (
    EmailCampaign, EmailCampaignRecipient, CampaignStatus, RecipientStatus,
)
from crm.models.task import Task
from crm.models.note import Note, NoteRevision

__all__ = [
    "Contact", "Pipeline", "Stage", "ContactStage",
    "Automation", "AutomationStep", "AutomationLog",
    "TriggerType", "StepType", "LogStatus",
    "EmailTemplate", "EmailCampaign", "EmailCampaignRecipient",
    "CampaignStatus", "RecipientStatus", "Task",
    "Note", "NoteRevision",
]
