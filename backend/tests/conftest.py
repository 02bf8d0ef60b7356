"""
pytest configuration and fixtures for SimpleAutomate tests.
"""
import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from crm.models import Automation, AutomationStep, Contact
from crm.services.pipeline_service import ensure_default_pipeline


@pytest.fixture
def user(db):
    return get_user_model().objects.create_user(
        username="owner", email="owner@example.com", password="pass1234",
    )


@pytest.fixture
def other_user(db):
    return get_user_model().objects.create_user(
        username="intruder", email="intruder@example.com", password="pass1234",
    )


@pytest.fixture
def api_client(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def pipeline(user):
    return ensure_default_pipeline(user.id)


@pytest.fixture
def contact(user):
    return Contact.objects.create(user=user, name="Ada Lovelace", email="a@b.com", tags=["y"])


@pytest.fixture
def make_automation(user):
    """Factory: make_automation(trigger_type, [(type, config), ...], **fields)."""

    def _make(trigger_type, steps, owner=None, **fields):
        automation = Automation.objects.create(
            user=owner or user,
            name=fields.pop("name", "Test automation"),
            trigger_type=trigger_type,
            **fields,
        )
        for position, (step_type, config) in enumerate(steps):
            AutomationStep.objects.create(
                automation=automation, type=step_type, position=position, config=config,
            )
        return automation

    return _make
