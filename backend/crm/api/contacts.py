"""
Contact API: CRUD plus the two lifecycle events automations listen to:

- POST /contacts/            → NEW_CONTACT
- POST /contacts/<id>/stage  → STAGE_CHANGE

Every lookup is scoped to request.user.
"""
import logging

from django.db.models import Q
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status

from crm.exceptions import AutomationEnqueueError
from crm.models import Contact, Stage, TriggerType
from crm.serializers import (
    ContactCreateSerializer, ContactUpdateSerializer, ContactSerializer,
    ContactStageSerializer, StageMoveSerializer,
)
from crm.services.automation_runner import trigger_automations_for_event
from crm.services.pipeline_service import ensure_default_pipeline, first_stage, assign_stage

logger = logging.getLogger(__name__)


def fire_trigger(user_id, trigger_type, contact_id):
    """
    Run the trigger matcher for a contact event. A partial enqueue failure is
    logged, never surfaced to the API caller.
    """
    try:
        trigger_automations_for_event(user_id=user_id, trigger_type=trigger_type, contact_id=contact_id)
    except AutomationEnqueueError as exc:
        logger.error("%s for contact %s: %s", trigger_type, contact_id, exc)


class ContactListCreateView(APIView):
    """List/search contacts and create new ones."""

    def get(self, request):
        queryset = Contact.objects.filter(user=request.user)

        search = (request.query_params.get("search") or "").strip()
        if search:
            queryset = queryset.filter(Q(name__icontains=search) | Q(email__icontains=search))

        tag = (request.query_params.get("tag") or "").strip()
        contacts = list(queryset.order_by("-created_at"))
        if tag:
            # JSON list containment isn't portable across backends; filter in Python
            contacts = [contact for contact in contacts if tag in (contact.tags or [])]

        return Response(ContactSerializer(contacts, many=True).data)

    def post(self, request):
        serializer = ContactCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        stage_id = data.pop("stage_id", None)
        if stage_id and not Stage.objects.filter(id=stage_id, pipeline__user=request.user).exists():
            return Response({"detail": "Stage not found"}, status=status.HTTP_404_NOT_FOUND)

        contact = Contact.objects.create(
            user=request.user,
            name=data["name"],
            email=data.get("email") or None,
            phone=data.get("phone") or None,
            tags=list(dict.fromkeys(data.get("tags") or [])),
        )

        if not stage_id:
            stage = first_stage(ensure_default_pipeline(request.user.id))
            stage_id = stage.id if stage else None
        if stage_id:
            assign_stage(contact.id, stage_id)

        fire_trigger(request.user.id, TriggerType.NEW_CONTACT, contact.id)

        return Response(ContactSerializer(contact).data, status=status.HTTP_201_CREATED)


class ContactDetailView(APIView):

    def _get(self, request, contact_id):
        return Contact.objects.filter(id=contact_id, user=request.user).first()

    def get(self, request, contact_id):
        contact = self._get(request, contact_id)
        if not contact:
            return Response({"detail": "Contact not found"}, status=status.HTTP_404_NOT_FOUND)

        history = contact.stage_assignments.select_related("stage").order_by("-assigned_at")
        return Response({
            "contact": ContactSerializer(contact).data,
            "stage_history": ContactStageSerializer(history, many=True).data,
        })

    def patch(self, request, contact_id):
        contact = self._get(request, contact_id)
        if not contact:
            return Response({"detail": "Contact not found"}, status=status.HTTP_404_NOT_FOUND)

        serializer = ContactUpdateSerializer(contact, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(ContactSerializer(contact).data)

    def delete(self, request, contact_id):
        contact = self._get(request, contact_id)
        if not contact:
            return Response({"detail": "Contact not found"}, status=status.HTTP_404_NOT_FOUND)
        contact.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


class ContactStageView(APIView):
    """Move a contact to a stage (appends history) and fire STAGE_CHANGE."""

    def post(self, request, contact_id):
        serializer = StageMoveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        stage_id = serializer.validated_data["stage_id"]

        contact = Contact.objects.filter(id=contact_id, user=request.user).first()
        if not contact:
            return Response({"detail": "Contact not found"}, status=status.HTTP_404_NOT_FOUND)

        if not Stage.objects.filter(id=stage_id, pipeline__user=request.user).exists():
            return Response({"detail": "Stage not found"}, status=status.HTTP_404_NOT_FOUND)

        assign_stage(contact.id, stage_id)
        fire_trigger(request.user.id, TriggerType.STAGE_CHANGE, contact.id)

        return Response({"message": "Stage updated"})
