import uuid
from django.conf import settings
from django.db import models


class Note(models.Model):
    """Free-text note on a contact. Every save of new content also writes a NoteRevision."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="notes")
    contact = models.ForeignKey("Contact", on_delete=models.CASCADE, related_name="notes")

    content = models.TextField()

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "notes"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["contact", "-created_at"], name="idx_note_contact_created"),
        ]

    def __str__(self):
        return f"Note on contact={self.contact_id}"


class NoteRevision(models.Model):
    """Append-only copy of a note's content at one point in time."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    note = models.ForeignKey("Note", on_delete=models.CASCADE, related_name="revisions")
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="note_revisions")

    content = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "note_revisions"
        ordering = ["-created_at"]
