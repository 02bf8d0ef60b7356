"""
Periodic sweep entrypoints.

One sweep pass covers:
  - automation queue processing
  - scheduled campaign dispatch
  - task due-date reminders
  - date-trigger scanning

dispatch_sweep() fans them out as independent django-q tasks so they run side
by side on the cluster; both the django-q Schedule (see
`manage.py setup_automation_sweep`) and the HTTP cron endpoint use it.
run_sweep() runs the same functions in-process, one after another, for
`manage.py run_sweep` on deployments without a cluster.
"""
import logging

from django_q.tasks import async_task

from crm.services.automation_runner import process_automation_queue, schedule_date_automations
from crm.services.campaign_service import process_scheduled_campaigns
from crm.services.task_reminders import send_task_notifications

logger = logging.getLogger(__name__)

SWEEP_TASKS = (
    ("automation_queue", "crm.services.automation_runner.process_automation_queue"),
    ("scheduled_campaigns", "crm.services.campaign_service.process_scheduled_campaigns"),
    ("task_notifications", "crm.services.task_reminders.send_task_notifications"),
    ("date_triggers", "crm.services.automation_runner.schedule_date_automations"),
)


def run_sweep() -> dict:
    """
    Run every sweep in order. A failure in one sweep is logged and recorded
    in the result; the remaining sweeps still run.
    """
    sweeps = (
        ("automation_queue", process_automation_queue),
        ("scheduled_campaigns", process_scheduled_campaigns),
        ("task_notifications", send_task_notifications),
        ("date_triggers", schedule_date_automations),
    )

    results = {}
    for name, sweep in sweeps:
        try:
            results[name] = sweep()
        except Exception as exc:
            logger.exception("Sweep %s failed", name)
            results[name] = {"error": str(exc)}
    return results


def dispatch_sweep() -> list[str]:
    """Queue each sweep as its own django-q task. Returns the task ids."""
    task_ids = []
    for name, func in SWEEP_TASKS:
        task_ids.append(async_task(func, task_name=f"sweep_{name}", q_options={"timeout": 300}))
    logger.info("Dispatched %d sweep tasks", len(task_ids))
    return task_ids
