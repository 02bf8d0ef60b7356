"""
Automation engine tests: trigger matching, queue processing, date scans.

Run with: pytest backend/tests/test_automation_runner.py -v
"""
from datetime import timedelta
from unittest.mock import patch

import pytest
from django.utils import timezone

from crm.exceptions import AutomationEnqueueError
from crm.models import AutomationLog, AutomationStep, Contact, LogStatus, StepType, TriggerType
from crm.services import automation_runner
from crm.services.automation_runner import (
    MISSING_STEP_MESSAGE,
    claim_log,
    date_offset_days,
    process_automation_queue,
    schedule_date_automations,
    trigger_automations_for_event,
)

WELCOME_STEPS = [
    (StepType.SEND_EMAIL, {"subject": "Welcome", "body": "<p>Hi</p>"}),
    (StepType.DELAY, {"amount": 1, "unit": "day"}),
    (StepType.UPDATE_TAGS, {"action": "add", "tags": ["x"]}),
]


def _queued(**filters):
    return AutomationLog.objects.filter(status=LogStatus.QUEUED, **filters)


# ============================================================================
# TRIGGER MATCHER
# ============================================================================

@pytest.mark.django_db
class TestTriggerMatcher:

    def test_enqueues_position_zero_only(self, make_automation, user, contact):
        automation = make_automation(TriggerType.NEW_CONTACT, WELCOME_STEPS)
        now = timezone.now()

        logs = trigger_automations_for_event(user.id, TriggerType.NEW_CONTACT, contact.id, now=now)

        assert len(logs) == 1
        log = AutomationLog.objects.get(automation=automation)
        assert log.step.position == 0
        assert log.status == LogStatus.QUEUED
        assert log.scheduled_for == now
        assert log.contact_id == contact.id
        assert log.user_id == user.id

    def test_only_matching_active_automations_of_the_tenant(self, make_automation, user, other_user, contact):
        make_automation(TriggerType.NEW_CONTACT, WELCOME_STEPS, name="match")
        make_automation(TriggerType.STAGE_CHANGE, WELCOME_STEPS, name="wrong trigger")
        make_automation(TriggerType.NEW_CONTACT, WELCOME_STEPS, name="paused", active=False)
        make_automation(TriggerType.NEW_CONTACT, WELCOME_STEPS, name="foreign", owner=other_user)

        trigger_automations_for_event(user.id, TriggerType.NEW_CONTACT, contact.id)

        assert list(AutomationLog.objects.values_list("automation__name", flat=True)) == ["match"]

    def test_automation_without_steps_is_skipped(self, make_automation, user, contact):
        make_automation(TriggerType.NEW_CONTACT, [])

        assert trigger_automations_for_event(user.id, TriggerType.NEW_CONTACT, contact.id) == []
        assert AutomationLog.objects.count() == 0

    def test_one_failed_insert_does_not_block_the_others(self, make_automation, user, contact):
        broken = make_automation(TriggerType.NEW_CONTACT, WELCOME_STEPS, name="broken")
        healthy = make_automation(TriggerType.NEW_CONTACT, WELCOME_STEPS, name="healthy")
        real_enqueue = automation_runner.enqueue_step

        def flaky_enqueue(automation, *args, **kwargs):
            if automation.id == broken.id:
                raise RuntimeError("insert failed")
            return real_enqueue(automation, *args, **kwargs)

        with patch("crm.services.automation_runner.enqueue_step", side_effect=flaky_enqueue):
            with pytest.raises(AutomationEnqueueError) as excinfo:
                trigger_automations_for_event(user.id, TriggerType.NEW_CONTACT, contact.id)

        assert [automation_id for automation_id, _ in excinfo.value.failures] == [broken.id]
        assert str(broken.id) in str(excinfo.value)
        assert len(excinfo.value.enqueued) == 1
        assert AutomationLog.objects.filter(automation=healthy).count() == 1
        assert AutomationLog.objects.filter(automation=broken).count() == 0


# ============================================================================
# QUEUE PROCESSOR
# ============================================================================

@pytest.mark.django_db
class TestQueueProcessor:

    def test_successful_step_queues_successor_for_next_poll(self, make_automation, user, contact, mailoutbox):
        automation = make_automation(TriggerType.NEW_CONTACT, WELCOME_STEPS)
        now = timezone.now()
        trigger_automations_for_event(user.id, TriggerType.NEW_CONTACT, contact.id, now=now)

        summary = process_automation_queue(now=now)

        assert summary["processed"] == 1
        assert summary["completed"] == 1
        first = AutomationLog.objects.get(automation=automation, step__position=0)
        assert first.status == LogStatus.COMPLETED
        assert first.processed_at == now
        successor = _queued(automation=automation).get()
        assert successor.step.position == 1
        assert successor.scheduled_for <= now
        assert len(mailoutbox) == 1

    def test_delay_successor_is_scheduled_after_the_delay(self, make_automation, user, contact):
        automation = make_automation(TriggerType.NEW_CONTACT, [
            (StepType.DELAY, {"amount": 2, "unit": "hour"}),
            (StepType.UPDATE_TAGS, {"action": "add", "tags": ["x"]}),
        ])
        now = timezone.now()
        trigger_automations_for_event(user.id, TriggerType.NEW_CONTACT, contact.id, now=now)

        process_automation_queue(now=now)

        successor = _queued(automation=automation).get()
        assert successor.step.position == 1
        assert successor.scheduled_for == now + timedelta(hours=2)

    def test_last_step_has_no_successor(self, make_automation, user, contact):
        automation = make_automation(TriggerType.NEW_CONTACT, [
            (StepType.UPDATE_TAGS, {"action": "add", "tags": ["x"]}),
        ])
        trigger_automations_for_event(user.id, TriggerType.NEW_CONTACT, contact.id)

        process_automation_queue()

        assert AutomationLog.objects.filter(automation=automation).count() == 1
        assert not _queued().exists()

    def test_deleted_step_fails_the_entry(self, make_automation, user, contact):
        automation = make_automation(TriggerType.NEW_CONTACT, WELCOME_STEPS)
        trigger_automations_for_event(user.id, TriggerType.NEW_CONTACT, contact.id)
        AutomationStep.objects.filter(automation=automation, position=0).delete()

        summary = process_automation_queue()

        assert summary["failed"] == 1
        log = AutomationLog.objects.get(automation=automation)
        assert log.status == LogStatus.FAILED
        assert log.message == MISSING_STEP_MESSAGE
        assert log.step_id is None
        assert not _queued().exists()

    def test_failed_step_is_terminal(self, make_automation, user, contact, mailoutbox):
        contact.email = None
        contact.save()
        automation = make_automation(TriggerType.NEW_CONTACT, WELCOME_STEPS)
        trigger_automations_for_event(user.id, TriggerType.NEW_CONTACT, contact.id)

        first = process_automation_queue()
        second = process_automation_queue()

        assert first["failed"] == 1
        assert second["processed"] == 0
        log = AutomationLog.objects.get(automation=automation)
        assert log.status == LogStatus.FAILED
        assert log.message == "Contact has no email address"
        assert mailoutbox == []

    def test_future_entries_wait(self, make_automation, user, contact):
        make_automation(TriggerType.NEW_CONTACT, WELCOME_STEPS)
        now = timezone.now()
        trigger_automations_for_event(user.id, TriggerType.NEW_CONTACT, contact.id, now=now + timedelta(hours=1))

        assert process_automation_queue(now=now)["processed"] == 0
        assert _queued().count() == 1

    def test_fifo_and_batch_cap(self, make_automation, user):
        automation = make_automation(TriggerType.NEW_CONTACT, [
            (StepType.DELAY, {"amount": 1, "unit": "minute"}),
        ])
        step = automation.steps.get()
        base = timezone.now() - timedelta(hours=1)
        ids = []
        for index in range(25):
            log = AutomationLog.objects.create(automation=automation, user=user, step=step)
            AutomationLog.objects.filter(pk=log.pk).update(timestamp=base + timedelta(seconds=index))
            ids.append(log.id)

        summary = process_automation_queue(batch_size=20)

        assert summary["processed"] == 20
        completed = set(AutomationLog.objects.filter(status=LogStatus.COMPLETED).values_list("id", flat=True))
        assert completed == set(ids[:20])
        assert set(_queued().values_list("id", flat=True)) == set(ids[20:])

    def test_entry_claimed_elsewhere_is_not_claimed_twice(self, make_automation, user, contact):
        make_automation(TriggerType.NEW_CONTACT, WELCOME_STEPS)
        now = timezone.now()
        [log] = trigger_automations_for_event(user.id, TriggerType.NEW_CONTACT, contact.id, now=now)

        assert claim_log(log, now) is True
        assert claim_log(AutomationLog.objects.get(pk=log.pk), now) is False

        log.refresh_from_db()
        assert log.status == LogStatus.PROCESSING
        assert log.claimed_at == now

    def test_processing_entries_are_skipped_until_stale(self, make_automation, user, contact, settings):
        settings.AUTOMATION_CLAIM_TIMEOUT_MINUTES = 15
        automation = make_automation(TriggerType.NEW_CONTACT, [
            (StepType.UPDATE_TAGS, {"action": "add", "tags": ["x"]}),
        ])
        now = timezone.now()
        [log] = trigger_automations_for_event(user.id, TriggerType.NEW_CONTACT, contact.id, now=now)
        claim_log(log, now)

        assert process_automation_queue(now=now + timedelta(minutes=5))["processed"] == 0

        summary = process_automation_queue(now=now + timedelta(minutes=20))
        assert summary["requeued"] == 1
        assert summary["completed"] == 1
        log.refresh_from_db()
        assert log.status == LogStatus.COMPLETED


# ============================================================================
# END-TO-END
# ============================================================================

@pytest.mark.django_db
class TestWelcomeSequence:

    def test_email_delay_tags(self, make_automation, user, contact, mailoutbox):
        automation = make_automation(TriggerType.NEW_CONTACT, WELCOME_STEPS)
        t0 = timezone.now()
        trigger_automations_for_event(user.id, TriggerType.NEW_CONTACT, contact.id, now=t0)

        # Email step, then the delay step on the following poll
        process_automation_queue(now=t0)
        assert len(mailoutbox) == 1
        process_automation_queue(now=t0)

        pending = _queued(automation=automation).get()
        assert pending.step.position == 2
        assert pending.scheduled_for == t0 + timedelta(days=1)

        assert process_automation_queue(now=t0 + timedelta(hours=23))["processed"] == 0
        contact.refresh_from_db()
        assert contact.tags == ["y"]

        process_automation_queue(now=t0 + timedelta(days=1))

        contact.refresh_from_db()
        assert set(contact.tags) == {"x", "y"}
        statuses = list(
            AutomationLog.objects.filter(automation=automation)
            .order_by("step__position").values_list("status", flat=True)
        )
        assert statuses == [LogStatus.COMPLETED] * 3
        assert len(mailoutbox) == 1

    def test_move_stage_without_stage_id(self, make_automation, user, contact, pipeline):
        automation = make_automation(TriggerType.NEW_CONTACT, [(StepType.MOVE_STAGE, {})])
        trigger_automations_for_event(user.id, TriggerType.NEW_CONTACT, contact.id)

        process_automation_queue()

        log = AutomationLog.objects.get(automation=automation)
        assert log.status == LogStatus.FAILED
        assert "stageId" in log.message
        assert contact.current_stage_assignment is None


# ============================================================================
# DATE-TRIGGER SCANNER
# ============================================================================

@pytest.mark.django_db
class TestDateScanner:

    def test_contacts_in_window_are_enqueued(self, make_automation, user):
        now = timezone.now()
        automation = make_automation(TriggerType.DATE, WELCOME_STEPS, trigger_config={"offsetDays": -3})
        in_window = Contact.objects.create(user=user, name="Old Friend", email="old@example.com")
        Contact.objects.filter(pk=in_window.pk).update(created_at=now - timedelta(days=3))
        Contact.objects.create(user=user, name="New Friend", email="new@example.com")

        assert schedule_date_automations(now=now) == 1

        log = AutomationLog.objects.get(automation=automation)
        assert log.contact_id == in_window.id
        assert log.step.position == 0
        assert log.scheduled_for == now

    def test_repeated_scans_duplicate_by_default(self, make_automation, contact, settings):
        settings.AUTOMATION_DATE_TRIGGER_DEDUP = False
        automation = make_automation(TriggerType.DATE, WELCOME_STEPS, trigger_config={"offsetDays": 0})
        now = timezone.now()

        schedule_date_automations(now=now)
        schedule_date_automations(now=now)

        assert AutomationLog.objects.filter(automation=automation, contact=contact).count() == 2

    def test_dedup_enqueues_once(self, make_automation, contact, settings):
        settings.AUTOMATION_DATE_TRIGGER_DEDUP = True
        automation = make_automation(TriggerType.DATE, WELCOME_STEPS, trigger_config={"offsetDays": 0})
        now = timezone.now()

        assert schedule_date_automations(now=now) == 1
        assert schedule_date_automations(now=now) == 0

        assert AutomationLog.objects.filter(automation=automation, contact=contact).count() == 1

    def test_inactive_and_empty_automations_are_ignored(self, make_automation, contact):
        make_automation(TriggerType.DATE, WELCOME_STEPS, trigger_config={"offsetDays": 0}, active=False)
        make_automation(TriggerType.DATE, [], trigger_config={"offsetDays": 0})

        assert schedule_date_automations() == 0
        assert AutomationLog.objects.count() == 0


# ============================================================================
# MALFORMED CONFIG IN THE QUEUE
# ============================================================================

@pytest.mark.django_db
class TestMalformedConfig:

    def test_string_delay_amount_still_chains(self, make_automation, user, contact):
        automation = make_automation(TriggerType.NEW_CONTACT, [
            (StepType.DELAY, {"amount": "2", "unit": "hour"}),
            (StepType.UPDATE_TAGS, {"action": "add", "tags": ["x"]}),
        ])
        now = timezone.now()
        trigger_automations_for_event(user.id, TriggerType.NEW_CONTACT, contact.id, now=now)

        summary = process_automation_queue(now=now)

        assert summary["completed"] == 1
        successor = _queued(automation=automation).get()
        assert successor.scheduled_for == now + timedelta(hours=2)

    def test_bad_date_config_does_not_stop_other_automations(self, make_automation, contact):
        good = make_automation(TriggerType.DATE, WELCOME_STEPS, name="good", trigger_config={"offsetDays": 0})
        make_automation(TriggerType.DATE, WELCOME_STEPS, name="bad offset", trigger_config={"offsetDays": "soon"})
        make_automation(TriggerType.DATE, WELCOME_STEPS, name="not an object", trigger_config=["offsetDays"])

        assert schedule_date_automations() == 1

        assert list(AutomationLog.objects.values_list("automation_id", flat=True)) == [good.id]


class TestDateOffsetDays:

    @pytest.mark.parametrize("config,expected", [
        ({}, 0),
        ({"offsetDays": None}, 0),
        ({"offsetDays": -3}, -3),
        ({"offsetDays": "2"}, 2),
    ])
    def test_valid(self, config, expected):
        assert date_offset_days(config) == expected

    @pytest.mark.parametrize("config", [{"offsetDays": "soon"}, {"offsetDays": True}, ["offsetDays"], "x"])
    def test_invalid(self, config):
        with pytest.raises(ValueError):
            date_offset_days(config)


# ============================================================================
# PAUSED AUTOMATIONS
# ============================================================================

@pytest.mark.django_db
class TestPausedAutomation:

    def test_entries_queued_before_pausing_still_run(self, make_automation, user, contact):
        automation = make_automation(TriggerType.NEW_CONTACT, [
            (StepType.UPDATE_TAGS, {"action": "add", "tags": ["x"]}),
        ])
        [log] = trigger_automations_for_event(user.id, TriggerType.NEW_CONTACT, contact.id)
        automation.active = False
        automation.save()

        summary = process_automation_queue()

        assert summary["completed"] == 1
        log.refresh_from_db()
        assert log.status == LogStatus.COMPLETED
        contact.refresh_from_db()
        assert set(contact.tags) == {"x", "y"}

    def test_paused_automation_takes_no_new_entries(self, make_automation, user, contact):
        make_automation(TriggerType.NEW_CONTACT, WELCOME_STEPS, active=False)

        assert trigger_automations_for_event(user.id, TriggerType.NEW_CONTACT, contact.id) == []
