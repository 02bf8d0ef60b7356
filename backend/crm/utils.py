"""Shared utility helpers used across services."""
from django.utils import timezone


def utcnow():
    """Timezone-aware now; the single clock the services read when no `now` is passed."""
    return timezone.now()


def start_of_day(moment):
    """Midnight at the start of `moment`'s day, in the project time zone."""
    local = timezone.localtime(moment)
    return local.replace(hour=0, minute=0, second=0, microsecond=0)
