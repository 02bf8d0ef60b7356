"""
Step Catalog

Each automation step type is a handler with the signature

    handler(log, step, now) -> datetime

The handler applies the step's effect to the log entry's contact and returns
when the *next* step should run. Only DELAY proposes a future time; every
other step proposes `now`, which the processor turns into "next poll".

Handlers raise StepExecutionError for anything that should fail the entry.
"""
import logging
import math
from datetime import datetime, timedelta

from django.core.exceptions import ValidationError

from crm.exceptions import StepExecutionError
from crm.models.automation import AutomationLog, AutomationStep, StepType
from crm.models.contact import Contact
from crm.models.email_template import EmailTemplate
from crm.models.pipeline import Stage
from crm.services.email import render_email_layout, send_system_email
from crm.services.pipeline_service import assign_stage
from crm.services.template_service import render_merge_tags

logger = logging.getLogger(__name__)

DEFAULT_EMAIL_SUBJECT = "SimpleAutomate Automation"

DELAY_UNITS = {
    "minute": "minutes",
    "hour": "hours",
    "day": "days",
}


def _load_contact(log: AutomationLog, step_label: str) -> Contact:
    if not log.contact_id:
        raise StepExecutionError(f"Missing contact for {step_label} step")
    contact = Contact.objects.filter(id=log.contact_id, user_id=log.user_id).first()
    if contact is None:
        raise StepExecutionError("Contact not found")
    return contact


def _find(queryset, object_id):
    """Row with this id, or None. Ids come from free-form JSON config and may be malformed."""
    try:
        return queryset.filter(id=object_id).first()
    except (ValidationError, ValueError):
        return None


# ─── SEND_EMAIL ───────────────────────────────────────────────────────────────

def handle_email_step(log: AutomationLog, step: AutomationStep, now: datetime) -> datetime:
    contact = _load_contact(log, "email")
    if not contact.email:
        raise StepExecutionError("Contact has no email address")

    config = step.config or {}
    subject = config.get("subject") or DEFAULT_EMAIL_SUBJECT
    body = config.get("body") or ""

    template_id = config.get("templateId")
    if template_id:
        template = _find(EmailTemplate.objects.filter(user_id=log.user_id), template_id)
        if template:
            subject, body = template.subject, template.body
        else:
            logger.warning("Template %s not found for step %s; using step content", template_id, step.id)

    subject = render_merge_tags(subject, contact)
    body = render_merge_tags(body, contact)

    send_system_email(
        to=contact.email,
        subject=subject,
        html=render_email_layout(subject, body),
        reply_to=log.user.email or None,
    )
    return now


# ─── DELAY ────────────────────────────────────────────────────────────────────

def delay_for(config: dict) -> timedelta:
    """
    Configured delay; defaults to 1 day. Numeric strings are accepted,
    anything non-numeric counts as 1. Unknown units count as days.
    """
    amount = config.get("amount")
    if amount is None:
        amount = 1
    try:
        amount = float(amount)
    except (TypeError, ValueError):
        amount = math.nan
    if not math.isfinite(amount):
        logger.warning("Non-numeric delay amount %r, treating as 1", config.get("amount"))
        amount = 1

    unit = config.get("unit") or "day"
    if not isinstance(unit, str) or unit not in DELAY_UNITS:
        logger.warning("Unknown delay unit %r, treating as days", unit)
        unit = "day"
    return timedelta(**{DELAY_UNITS[unit]: amount})


def handle_delay_step(log: AutomationLog, step: AutomationStep, now: datetime) -> datetime:
    return now + delay_for(step.config or {})


# ─── UPDATE_TAGS ──────────────────────────────────────────────────────────────

def apply_tag_action(existing: list[str], tags: list[str], action: str) -> list[str]:
    """
    add: union, keeping existing order and appending new tags once.
    remove: difference.
    """
    if action == "remove":
        return [tag for tag in existing if tag not in tags]

    result = []
    for tag in [*existing, *tags]:
        if tag not in result:
            result.append(tag)
    return result


def normalize_tags(value) -> list[str]:
    """A single tag string becomes a one-item list; anything but a list of strings is rejected."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value else []
    if not isinstance(value, list) or not all(isinstance(tag, str) for tag in value):
        raise StepExecutionError("tags must be a list of strings")
    return value


def handle_tag_step(log: AutomationLog, step: AutomationStep, now: datetime) -> datetime:
    contact = _load_contact(log, "tag")
    config = step.config or {}
    tags = normalize_tags(config.get("tags"))
    action = config.get("action") or "add"

    contact.tags = apply_tag_action(contact.tags or [], tags, action)
    contact.save(update_fields=["tags", "updated_at"])
    return now


# ─── MOVE_STAGE ───────────────────────────────────────────────────────────────

def handle_move_stage_step(log: AutomationLog, step: AutomationStep, now: datetime) -> datetime:
    if not log.contact_id:
        raise StepExecutionError("Missing contact for stage move step")

    stage_id = (step.config or {}).get("stageId")
    if not stage_id:
        raise StepExecutionError("stageId missing")

    if _find(Stage.objects.filter(pipeline__user_id=log.user_id), stage_id) is None:
        raise StepExecutionError(f"Stage {stage_id} not found")

    assign_stage(log.contact_id, stage_id)
    return now


STEP_HANDLERS = {
    StepType.SEND_EMAIL: handle_email_step,
    StepType.DELAY: handle_delay_step,
    StepType.UPDATE_TAGS: handle_tag_step,
    StepType.MOVE_STAGE: handle_move_stage_step,
}


def execute_step(log: AutomationLog, step: AutomationStep, now: datetime) -> datetime:
    """Run one step for one log entry. Returns the successor's scheduled time."""
    handler = STEP_HANDLERS.get(step.type)
    if handler is None:
        raise StepExecutionError(f"Unsupported automation step {step.type}")
    return handler(log, step, now)
