"""
Seed data script: creates a demo tenant with a pipeline, the default email
templates, a welcome automation and a handful of contacts.

Usage: cd backend && python seed_data.py
"""
import os
import sys
import django

# Setup Django
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'simpleautomate.settings')
django.setup()

from django.contrib.auth import get_user_model

from crm.models import Automation, AutomationStep, Contact, StepType, TriggerType
from crm.services.automation_runner import trigger_automations_for_event
from crm.services.pipeline_service import ensure_default_pipeline, first_stage, assign_stage
from crm.services.template_service import ensure_default_templates

DEMO_EMAIL = "demo@simpleautomate.co.uk"
DEMO_PASSWORD = "DemoPass123!"

CONTACTS = [
    {"name": "Priya Patel", "email": "priya.patel@example.com", "phone": "+44 7700 900105", "tags": ["webinar"]},
    {"name": "David Chen", "email": "david.chen@example.com", "phone": "+44 7700 900102", "tags": []},
    {"name": "Maria Lopez", "email": "maria.lopez@example.com", "phone": None, "tags": ["referral"]},
    {"name": "Tom Baker", "email": None, "phone": "+44 7700 900109", "tags": []},
]

WELCOME_STEPS = [
    (StepType.SEND_EMAIL, {"subject": "Welcome to SimpleAutomate", "body": "<p>Thanks for joining our CRM!</p>"}),
    (StepType.DELAY, {"amount": 1, "unit": "day"}),
    (StepType.UPDATE_TAGS, {"action": "add", "tags": ["warm"]}),
]


def seed():
    User = get_user_model()
    user, created = User.objects.get_or_create(username=DEMO_EMAIL, defaults={"email": DEMO_EMAIL})
    if created:
        user.set_password(DEMO_PASSWORD)
        user.save()

    pipeline = ensure_default_pipeline(user.id)
    ensure_default_templates(user.id)

    automation, created = Automation.objects.get_or_create(
        user=user,
        name="Welcome new contact",
        defaults={"trigger_type": TriggerType.NEW_CONTACT, "trigger_config": {}},
    )
    if created:
        AutomationStep.objects.bulk_create([
            AutomationStep(automation=automation, type=step_type, position=index, config=config)
            for index, (step_type, config) in enumerate(WELCOME_STEPS)
        ])

    stage = first_stage(pipeline)
    for data in CONTACTS:
        contact, created = Contact.objects.get_or_create(user=user, name=data["name"], defaults=data)
        if not created:
            continue
        if stage:
            assign_stage(contact.id, stage.id)
        trigger_automations_for_event(user.id, TriggerType.NEW_CONTACT, contact.id)
        print(f"  Contact: {contact.name:12s} | {contact.email or '(no email)'}")

    print(f"\n{'='*50}")
    print(f"Seeded demo user -> {DEMO_EMAIL} / {DEMO_PASSWORD}")
    print(f"Pipeline ID {pipeline.id}")
    print(f"\nRun the server: python manage.py runserver")
    print(f"Register the sweep: python manage.py setup_automation_sweep && python manage.py qcluster")


if __name__ == "__main__":
    seed()
