"""
Periodic sweep tests: campaigns, task reminders, the sweep entrypoints and
the django-q schedule command.

Run with: pytest backend/tests/test_sweep.py -v
"""
from datetime import timedelta
from io import StringIO
from unittest.mock import patch

import pytest
from django.core.management import call_command
from django.utils import timezone
from django_q.models import Schedule

from crm.models import (
    CampaignStatus, Contact, EmailCampaign, EmailCampaignRecipient,
    RecipientStatus, Task,
)
from crm.services.campaign_service import claim_campaign, process_scheduled_campaigns
from crm.services.sweep import SWEEP_TASKS, dispatch_sweep, run_sweep
from crm.services.task_reminders import claim_reminder, send_task_notifications


# ============================================================================
# CAMPAIGNS
# ============================================================================

@pytest.mark.django_db
class TestCampaigns:

    def test_immediate_campaign_sends_and_bounces(self, api_client, user, contact, mailoutbox):
        no_email = Contact.objects.create(user=user, name="Silent Bob")

        response = api_client.post("/api/campaigns/", {
            "name": "Launch",
            "subject": "We launched",
            "body": "<p>News</p>",
            "contact_ids": [str(contact.id), str(no_email.id)],
        }, format="json")

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == CampaignStatus.SENT
        statuses = {row["contact_id"]: row["status"] for row in data["recipients"]}
        assert statuses == {str(contact.id): RecipientStatus.SENT, str(no_email.id): RecipientStatus.BOUNCED}
        assert [message.to for message in mailoutbox] == [["a@b.com"]]

    def test_foreign_contacts_are_dropped(self, api_client, other_user, contact):
        foreign = Contact.objects.create(user=other_user, name="Theirs", email="t@example.com")

        response = api_client.post("/api/campaigns/", {
            "name": "Launch",
            "subject": "Hi",
            "body": "Body",
            "contact_ids": [str(contact.id), str(foreign.id)],
        }, format="json")

        campaign = EmailCampaign.objects.get(id=response.json()["id"])
        assert list(campaign.recipients.values_list("contact_id", flat=True)) == [contact.id]

    def test_scheduled_campaign_waits_for_its_time(self, api_client, contact, mailoutbox):
        send_at = timezone.now() + timedelta(hours=1)

        response = api_client.post("/api/campaigns/", {
            "name": "Later",
            "subject": "Soon",
            "body": "Body",
            "contact_ids": [str(contact.id)],
            "scheduled_for": send_at.isoformat(),
        }, format="json")

        assert response.json()["status"] == CampaignStatus.SCHEDULED
        assert process_scheduled_campaigns(now=send_at - timedelta(minutes=1)) == 0
        assert mailoutbox == []

        assert process_scheduled_campaigns(now=send_at) == 1

        campaign = EmailCampaign.objects.get(id=response.json()["id"])
        assert campaign.status == CampaignStatus.SENT
        recipient = campaign.recipients.get()
        assert recipient.status == RecipientStatus.SENT
        assert recipient.sent_at is not None
        assert len(mailoutbox) == 1

    def test_dispatch_failure_is_reported(self, api_client, contact):
        with patch("crm.services.campaign_service.send_system_email", side_effect=OSError("smtp down")):
            response = api_client.post("/api/campaigns/", {
                "name": "Launch",
                "subject": "Hi",
                "body": "Body",
                "contact_ids": [str(contact.id)],
            }, format="json")

        assert response.status_code == 502
        assert "smtp down" in response.json()["detail"]
        assert EmailCampaignRecipient.objects.get().status == RecipientStatus.PENDING

    def test_campaign_is_claimed_once(self, user):
        campaign = EmailCampaign.objects.create(
            user=user, name="Later", subject="Hi", body="Body",
            status=CampaignStatus.SCHEDULED, scheduled_for=timezone.now(),
        )

        assert claim_campaign(campaign.id) is True
        assert claim_campaign(campaign.id) is False
        campaign.refresh_from_db()
        assert campaign.status == CampaignStatus.SENDING

    def test_campaign_claimed_by_another_sweep_is_not_sent(self, user, contact, mailoutbox):
        now = timezone.now()
        campaign = EmailCampaign.objects.create(
            user=user, name="Later", subject="Hi", body="Body",
            status=CampaignStatus.SCHEDULED, scheduled_for=now,
        )
        EmailCampaignRecipient.objects.create(campaign=campaign, contact=contact)

        def other_sweep_wins(campaign_id):
            claim_campaign(campaign_id)
            return claim_campaign(campaign_id)

        with patch("crm.services.campaign_service.claim_campaign", side_effect=other_sweep_wins):
            assert process_scheduled_campaigns(now=now) == 0

        assert mailoutbox == []
        assert EmailCampaignRecipient.objects.get().status == RecipientStatus.PENDING


# ============================================================================
# TASK REMINDERS
# ============================================================================

@pytest.mark.django_db
class TestTaskReminders:

    def test_reminds_once_inside_window(self, user, contact, mailoutbox):
        now = timezone.now()
        soon = Task.objects.create(user=user, contact=contact, title="Call Ada", due_date=now + timedelta(hours=3))
        Task.objects.create(user=user, title="Far away", due_date=now + timedelta(days=3))
        Task.objects.create(user=user, title="Done", due_date=now, completed=True)

        assert send_task_notifications(now=now) == 1
        assert send_task_notifications(now=now) == 0

        soon.refresh_from_db()
        assert soon.notification_sent is True
        assert len(mailoutbox) == 1
        assert mailoutbox[0].to == [user.email]
        assert mailoutbox[0].subject == "Task due soon: Call Ada"
        assert "Ada Lovelace" in mailoutbox[0].alternatives[0][0]

    def test_reminder_is_claimed_once(self, user):
        task = Task.objects.create(user=user, title="Call Ada", due_date=timezone.now())

        assert claim_reminder(task) is True
        assert claim_reminder(task) is False

    def test_reminder_claimed_by_another_sweep_is_not_sent(self, user, mailoutbox):
        Task.objects.create(user=user, title="Call Ada", due_date=timezone.now())

        def other_sweep_wins(task):
            claim_reminder(task)
            return claim_reminder(task)

        with patch("crm.services.task_reminders.claim_reminder", side_effect=other_sweep_wins):
            assert send_task_notifications() == 0

        assert mailoutbox == []

    def test_failed_send_releases_the_claim(self, user):
        task = Task.objects.create(user=user, title="Call Ada", due_date=timezone.now())

        with patch("crm.services.task_reminders.send_system_email", side_effect=OSError("smtp down")):
            with pytest.raises(OSError):
                send_task_notifications()

        task.refresh_from_db()
        assert task.notification_sent is False


# ============================================================================
# SWEEP ENTRYPOINTS
# ============================================================================

@pytest.mark.django_db
class TestSweep:

    def test_run_sweep_runs_every_pass(self, user):
        results = run_sweep()

        assert set(results) == {name for name, _ in SWEEP_TASKS}
        assert results["automation_queue"]["processed"] == 0
        assert results["scheduled_campaigns"] == 0

    def test_one_failing_sweep_does_not_stop_the_rest(self, user, contact, mailoutbox):
        Task.objects.create(user=user, title="Call Ada", due_date=timezone.now())

        with patch("crm.services.sweep.process_scheduled_campaigns", side_effect=RuntimeError("db gone")):
            results = run_sweep()

        assert results["scheduled_campaigns"] == {"error": "db gone"}
        assert results["task_notifications"] == 1
        assert len(mailoutbox) == 1

    def test_dispatch_sweep_queues_each_task(self):
        with patch("crm.services.sweep.async_task", side_effect=lambda *a, **kw: kw["task_name"]) as queue:
            task_ids = dispatch_sweep()

        assert queue.call_count == len(SWEEP_TASKS)
        assert task_ids == [f"sweep_{name}" for name, _ in SWEEP_TASKS]
        funcs = [call.args[0] for call in queue.call_args_list]
        assert "crm.services.automation_runner.process_automation_queue" in funcs

    def test_run_sweep_command(self, user):
        out = StringIO()
        call_command("run_sweep", stdout=out)
        assert "automation_queue" in out.getvalue()


@pytest.mark.django_db
class TestSetupAutomationSweepCommand:

    def test_creates_schedule(self):
        out = StringIO()
        call_command("setup_automation_sweep", stdout=out)

        schedule = Schedule.objects.get(name="simpleautomate_sweep")
        assert schedule.func == "crm.services.sweep.dispatch_sweep"
        assert schedule.schedule_type == Schedule.MINUTES
        assert schedule.minutes == 1
        assert schedule.repeats == -1
        assert "Created" in out.getvalue()

    def test_is_idempotent(self):
        call_command("setup_automation_sweep", stdout=StringIO())
        out = StringIO()
        call_command("setup_automation_sweep", "--minutes", "5", stdout=out)

        assert Schedule.objects.filter(name="simpleautomate_sweep").count() == 1
        assert Schedule.objects.get(name="simpleautomate_sweep").minutes == 5
        assert "Updated" in out.getvalue()
