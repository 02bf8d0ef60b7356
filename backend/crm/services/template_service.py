"""Email templates: default seeding and merge-tag rendering."""
import re

from crm.models.email_template import EmailTemplate

DEFAULT_TEMPLATES = [
    {
        "name": "Welcome sequence – day 1",
        "subject": "Welcome to our workspace {{contact.firstName}}",
        "body": (
            "<p>Hi {{contact.firstName}},</p>\n"
            "<p>Great to meet you! This note is sent via SimpleAutomate so every reply "
            "lands in your CRM history.</p>\n"
            "<p>Hit reply if you have any questions or book time directly with me.</p>\n"
            "<p>— The SimpleAutomate team</p>"
        ),
    },
    {
        "name": "Event / webinar invite",
        "subject": "You're invited: upcoming workshop",
        "body": (
            "<p>Hi {{contact.firstName}},</p>\n"
            "<p>We're hosting a short live session that walks through the exact automation "
            "stack our clients use.</p>\n"
            "<ul>\n  <li>15 minute playbook</li>\n  <li>Live Q&A</li>\n"
            "  <li>Replay delivered if you can't attend</li>\n</ul>\n"
            "<p>Reserve a seat with one click below.</p>"
        ),
    },
    {
        "name": "Customer success check-in",
        "subject": "Quick check-in",
        "body": (
            "<p>Hi {{contact.firstName}},</p>\n"
            "<p>Just checking in to see how things are progressing. Reply with any blockers "
            "and we'll slot a quick call.</p>\n"
            "<p>Talk soon!</p>"
        ),
    },
]

_MERGE_TAG = re.compile(r"\{\{\s*contact\.(\w+)\s*\}\}")


def ensure_default_templates(user_id) -> None:
    """Seed the starter templates the first time a tenant lists templates."""
    if EmailTemplate.objects.filter(user_id=user_id).exists():
        return
    EmailTemplate.objects.bulk_create([
        EmailTemplate(user_id=user_id, **template) for template in DEFAULT_TEMPLATES
    ])


def render_merge_tags(text: str, contact) -> str:
    """
    Replace {{contact.firstName}}, {{contact.name}}, {{contact.email}} and
    {{contact.phone}}. Unknown tags are left as-is.
    """
    values = {
        "firstName": (contact.name or "").split(" ")[0],
        "name": contact.name or "",
        "email": contact.email or "",
        "phone": contact.phone or "",
    }

    def _replace(match):
        key = match.group(1)
        return values[key] if key in values else match.group(0)

    return _MERGE_TAG.sub(_replace, text)
