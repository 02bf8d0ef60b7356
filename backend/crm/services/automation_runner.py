"""
Automation Engine

- trigger_automations_for_event(): contact event → QUEUED entry for step 0 of each matching automation
- process_automation_queue(): periodic poll; runs due entries one at a time, chains the successor
- schedule_date_automations(): periodic scan for DATE-triggered automations

Queue semantics:
  One AutomationLog row = one attempt. A failed step is terminal for that
  contact's run (no retry). Entries are claimed with a conditional
  QUEUED → PROCESSING update before running, so overlapping polls never run
  the same entry twice. Claims older than AUTOMATION_CLAIM_TIMEOUT_MINUTES
  are handed back to the queue at the start of each poll.

Steps advance at most one position per poll: a successor is always written
as a new QUEUED row and picked up by a later pass.
"""
import logging
from datetime import datetime, timedelta

from django.conf import settings
from django.db import transaction
from django.db.models import Prefetch, Q

from crm.exceptions import AutomationEnqueueError
from crm.models.automation import (
    Automation, AutomationLog, AutomationStep, LogStatus, TriggerType,
)
from crm.models.contact import Contact
from crm.services.steps import execute_step
from crm.utils import utcnow, start_of_day

logger = logging.getLogger(__name__)

MISSING_STEP_MESSAGE = "Missing step reference"


# ─── Queue store ──────────────────────────────────────────────────────────────

def load_automation_steps(automation_id) -> list[AutomationStep]:
    return list(AutomationStep.objects.filter(automation_id=automation_id).order_by("position"))


def enqueue_step(automation: Automation, step: AutomationStep, contact_id, scheduled_for: datetime) -> AutomationLog:
    return AutomationLog.objects.create(
        automation_id=automation.id,
        user_id=automation.user_id,
        contact_id=contact_id,
        step_id=step.id,
        status=LogStatus.QUEUED,
        scheduled_for=scheduled_for,
    )


def enqueue_next_step(log: AutomationLog, scheduled_for: datetime) -> AutomationLog | None:
    """Queue the step after log.step by position, if there is one and the entry has a contact."""
    steps = load_automation_steps(log.automation_id)
    step_ids = [step.id for step in steps]
    if log.step_id not in step_ids:
        return None

    index = step_ids.index(log.step_id)
    if index + 1 >= len(steps) or not log.contact_id:
        return None

    next_step = steps[index + 1]
    return AutomationLog.objects.create(
        automation_id=log.automation_id,
        user_id=log.user_id,
        contact_id=log.contact_id,
        step_id=next_step.id,
        status=LogStatus.QUEUED,
        scheduled_for=scheduled_for,
    )


def claim_log(log: AutomationLog, now: datetime) -> bool:
    """Atomically move a QUEUED entry to PROCESSING. False if someone else got it first."""
    claimed = (
        AutomationLog.objects
        .filter(pk=log.pk, status=LogStatus.QUEUED)
        .update(status=LogStatus.PROCESSING, claimed_at=now)
    )
    if claimed:
        log.status = LogStatus.PROCESSING
        log.claimed_at = now
    return bool(claimed)


def requeue_stale_claims(now: datetime) -> int:
    timeout = settings.AUTOMATION_CLAIM_TIMEOUT_MINUTES
    if timeout <= 0:
        return 0

    cutoff = now - timedelta(minutes=timeout)
    requeued = (
        AutomationLog.objects
        .filter(status=LogStatus.PROCESSING, claimed_at__lt=cutoff)
        .update(status=LogStatus.QUEUED, claimed_at=None)
    )
    if requeued:
        logger.warning("Re-queued %d automation entries with stale claims", requeued)
    return requeued


def _finish(log: AutomationLog, **fields) -> None:
    AutomationLog.objects.filter(pk=log.pk).update(**fields)
    for name, value in fields.items():
        setattr(log, name, value)


# ─── Trigger matcher ──────────────────────────────────────────────────────────

def trigger_automations_for_event(user_id, trigger_type: str, contact_id, now: datetime | None = None) -> list[AutomationLog]:
    """
    Enqueue step 0 of every active automation of this tenant with this trigger.

    Automations without steps are skipped. Each insert runs in its own
    savepoint; failures are collected and raised together as
    AutomationEnqueueError after all automations have been attempted.
    """
    now = now or utcnow()
    automations = (
        Automation.objects
        .filter(user_id=user_id, active=True, trigger_type=trigger_type)
        .prefetch_related(Prefetch("steps", queryset=AutomationStep.objects.order_by("position")))
    )

    enqueued = []
    failures = []
    for automation in automations:
        steps = list(automation.steps.all())
        if not steps:
            continue
        try:
            with transaction.atomic():
                enqueued.append(enqueue_step(automation, steps[0], contact_id, now))
        except Exception as exc:
            logger.exception("Failed to enqueue automation %s for contact %s", automation.id, contact_id)
            failures.append((automation.id, exc))

    if enqueued:
        logger.info(
            "%s for contact %s: enqueued %d automation(s)",
            trigger_type, contact_id, len(enqueued),
        )
    if failures:
        raise AutomationEnqueueError(failures, enqueued=enqueued)
    return enqueued


# ─── Queue processor ──────────────────────────────────────────────────────────

def due_logs(now: datetime, batch_size: int) -> list[AutomationLog]:
    return list(
        AutomationLog.objects
        .filter(status=LogStatus.QUEUED)
        .filter(Q(scheduled_for__isnull=True) | Q(scheduled_for__lte=now))
        .select_related("step", "user")
        .order_by("timestamp")[:batch_size]
    )


def process_log(log: AutomationLog, now: datetime) -> str:
    """Run one claimed entry. Returns "completed" or "failed"."""
    step = log.step
    if step is None:
        _finish(log, status=LogStatus.FAILED, message=MISSING_STEP_MESSAGE)
        logger.warning("Automation log %s references a deleted step", log.id)
        return "failed"

    try:
        next_run = execute_step(log, step, now)
        with transaction.atomic():
            _finish(log, status=LogStatus.COMPLETED, processed_at=now)
            successor = enqueue_next_step(log, next_run)
    except Exception as exc:
        logger.warning("Automation log %s failed at %s step: %s", log.id, step.type, exc)
        _finish(log, status=LogStatus.FAILED, message=str(exc))
        return "failed"

    if successor:
        logger.debug("Automation log %s → next entry %s at %s", log.id, successor.id, next_run)
    return "completed"


def process_automation_queue(now: datetime | None = None, batch_size: int | None = None) -> dict:
    """
    One poll pass. Picks up to batch_size due QUEUED entries, oldest first,
    and runs them strictly one after another.
    """
    now = now or utcnow()
    batch_size = batch_size or settings.AUTOMATION_BATCH_SIZE

    summary = {
        "requeued": requeue_stale_claims(now),
        "processed": 0,
        "completed": 0,
        "failed": 0,
        "skipped": 0,
    }

    for log in due_logs(now, batch_size):
        if not claim_log(log, now):
            summary["skipped"] += 1
            continue
        outcome = process_log(log, now)
        summary["processed"] += 1
        summary[outcome] += 1

    if summary["processed"]:
        logger.info(
            "Automation queue pass: %d processed (%d completed, %d failed)",
            summary["processed"], summary["completed"], summary["failed"],
        )
    return summary


# ─── Date-trigger scanner ─────────────────────────────────────────────────────

def date_trigger_window(now: datetime, offset_days: int) -> tuple[datetime, datetime]:
    target = start_of_day(now + timedelta(days=offset_days))
    return target, target + timedelta(days=1)


def date_offset_days(trigger_config) -> int:
    """offsetDays from a DATE trigger config; raises ValueError when it is not a whole number."""
    if not isinstance(trigger_config, dict):
        raise ValueError(f"trigger_config must be an object, got {type(trigger_config).__name__}")
    offset = trigger_config.get("offsetDays") or 0
    if isinstance(offset, bool):
        raise ValueError(f"offsetDays must be an integer, got {offset!r}")
    try:
        return int(offset)
    except (TypeError, ValueError):
        raise ValueError(f"offsetDays must be an integer, got {offset!r}") from None


def _enqueue_date_window(automation: Automation, now: datetime) -> int:
    window_start, window_end = date_trigger_window(now, date_offset_days(automation.trigger_config))

    first_step = AutomationStep.objects.filter(automation=automation).order_by("position").first()
    if first_step is None:
        return 0

    contacts = Contact.objects.filter(
        user_id=automation.user_id,
        created_at__gte=window_start,
        created_at__lt=window_end,
    )
    if settings.AUTOMATION_DATE_TRIGGER_DEDUP:
        contacts = contacts.exclude(automation_logs__automation=automation)

    count = 0
    for contact_id in contacts.values_list("id", flat=True):
        enqueue_step(automation, first_step, contact_id, now)
        count += 1
    return count


def schedule_date_automations(now: datetime | None = None) -> int:
    """
    For each active DATE automation, enqueue every tenant contact created in
    [today + offsetDays, +1 day).

    Repeated scans of the same window enqueue the same contacts again unless
    AUTOMATION_DATE_TRIGGER_DEDUP is on, in which case contacts that already
    have an entry for the automation are skipped. An automation with a bad
    trigger config is logged and skipped; the others are still scanned.
    """
    now = now or utcnow()
    total = 0

    automations = Automation.objects.filter(trigger_type=TriggerType.DATE, active=True)
    for automation in automations:
        try:
            with transaction.atomic():
                total += _enqueue_date_window(automation, now)
        except Exception:
            logger.exception("Date trigger scan failed for automation %s", automation.id)

    if total:
        logger.info("Date trigger scan enqueued %d contact(s)", total)
    return total
