"""
Management command to register the periodic sweep with django-q.

Usage:
    python manage.py setup_automation_sweep [--minutes N]

This creates (or updates) a Schedule entry that runs dispatch_sweep() on a fixed
interval. Each tick queues the automation queue, scheduled campaigns, task
reminders and date-trigger scanning as separate tasks so they run side by
side on the cluster. Safe to run multiple times: it uses update_or_create.
"""
from django.core.management.base import BaseCommand
from django_q.models import Schedule


class Command(BaseCommand):
    help = "Register the periodic automation/campaign sweep task with django-q"

    def add_arguments(self, parser):
        parser.add_argument("--minutes", type=int, default=1, help="Sweep interval in minutes")

    def handle(self, *args, **options):
        minutes = options["minutes"]
        schedule, created = Schedule.objects.update_or_create(
            name="simpleautomate_sweep",
            defaults={
                "func": "crm.services.sweep.dispatch_sweep",
                "schedule_type": Schedule.MINUTES,
                "minutes": minutes,
                "repeats": -1,  # run forever
            },
        )
        verb = "Created" if created else "Updated"
        self.stdout.write(self.style.SUCCESS(
            f"{verb} periodic task: {schedule.name} (every {minutes} minute(s))"
        ))
