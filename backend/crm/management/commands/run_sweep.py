"""
Run one sweep pass in the foreground.

Usage:
    python manage.py run_sweep

Handy for cron-driven deployments that don't run a django-q cluster.
"""
import json

from django.core.management.base import BaseCommand

from crm.services.sweep import run_sweep


class Command(BaseCommand):
    help = "Run the automation queue, campaign, reminder and date-trigger sweeps once"

    def handle(self, *args, **options):
        results = run_sweep()
        self.stdout.write(self.style.SUCCESS(json.dumps(results, default=str)))
