"""
Note API: per-contact notes with an append-only revision trail.

Creating a note and every content update each write a NoteRevision, so the
revision list always ends with the note's current text.
"""
from django.db import transaction
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status

from crm.models import Contact, Note, NoteRevision
from crm.serializers import NoteSerializer, NoteRevisionSerializer, NoteContentSerializer


def _note_not_found():
    return Response({"detail": "Note not found"}, status=status.HTTP_404_NOT_FOUND)


class ContactNotesView(APIView):

    def get(self, request, contact_id):
        notes = Note.objects.filter(contact_id=contact_id, user=request.user).order_by("-created_at")
        return Response(NoteSerializer(notes, many=True).data)

    def post(self, request, contact_id):
        serializer = NoteContentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        content = serializer.validated_data["content"]

        contact = Contact.objects.filter(id=contact_id, user=request.user).first()
        if not contact:
            return Response({"detail": "Contact not found"}, status=status.HTTP_404_NOT_FOUND)

        with transaction.atomic():
            note = Note.objects.create(user=request.user, contact=contact, content=content)
            NoteRevision.objects.create(note=note, user=request.user, content=content)

        return Response(NoteSerializer(note).data, status=status.HTTP_201_CREATED)


class NoteDetailView(APIView):

    def put(self, request, note_id):
        serializer = NoteContentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        content = serializer.validated_data["content"]

        note = Note.objects.filter(id=note_id, user=request.user).first()
        if not note:
            return _note_not_found()

        with transaction.atomic():
            note.content = content
            note.save(update_fields=["content", "updated_at"])
            NoteRevision.objects.create(note=note, user=request.user, content=content)

        return Response(NoteSerializer(note).data)

    def delete(self, request, note_id):
        note = Note.objects.filter(id=note_id, user=request.user).first()
        if not note:
            return _note_not_found()
        note.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


class NoteRevisionsView(APIView):
    """Revision history for one note, newest first."""

    def get(self, request, note_id):
        note = Note.objects.filter(id=note_id, user=request.user).first()
        if not note:
            return _note_not_found()
        revisions = note.revisions.order_by("-created_at")
        return Response(NoteRevisionSerializer(revisions, many=True).data)
