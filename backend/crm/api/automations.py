"""
Automation API: define workflows and inspect their run history.

Deleting an automation cascades to its steps and log entries. Pausing one
(active=false) only stops new triggering; already-queued entries still run.
"""
from django.db import transaction
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status

from crm.models import Automation, AutomationStep, AutomationLog, LogStatus
from crm.serializers import (
    AutomationCreateSerializer, AutomationUpdateSerializer, AutomationSerializer,
    AutomationStepsReplaceSerializer, AutomationLogSerializer,
)


def _create_steps(automation, steps):
    AutomationStep.objects.bulk_create([
        AutomationStep(
            automation=automation,
            type=step["type"],
            position=step["position"],
            config=step.get("config") or {},
        )
        for step in steps
    ])


def _not_found():
    return Response({"detail": "Automation not found"}, status=status.HTTP_404_NOT_FOUND)


class AutomationListCreateView(APIView):

    def get(self, request):
        automations = (
            Automation.objects
            .filter(user=request.user)
            .prefetch_related("steps")
            .order_by("-created_at")
        )
        return Response(AutomationSerializer(automations, many=True).data)

    def post(self, request):
        serializer = AutomationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        with transaction.atomic():
            automation = Automation.objects.create(
                user=request.user,
                name=data["name"],
                active=data["active"],
                trigger_type=data["trigger_type"],
                trigger_config=data["trigger_config"],
            )
            _create_steps(automation, data["steps"])

        return Response(AutomationSerializer(automation).data, status=status.HTTP_201_CREATED)


class AutomationDetailView(APIView):

    def get(self, request, automation_id):
        automation = Automation.objects.filter(id=automation_id, user=request.user).first()
        if not automation:
            return _not_found()
        return Response(AutomationSerializer(automation).data)

    def patch(self, request, automation_id):
        automation = Automation.objects.filter(id=automation_id, user=request.user).first()
        if not automation:
            return _not_found()

        serializer = AutomationUpdateSerializer(automation, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(AutomationSerializer(automation).data)

    def delete(self, request, automation_id):
        automation = Automation.objects.filter(id=automation_id, user=request.user).first()
        if not automation:
            return _not_found()
        automation.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


class AutomationStepsView(APIView):
    """
    Replace the whole step list. Old step rows are deleted, so entries still
    queued against them will fail with "Missing step reference".
    """

    def put(self, request, automation_id):
        serializer = AutomationStepsReplaceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        automation = Automation.objects.filter(id=automation_id, user=request.user).first()
        if not automation:
            return _not_found()

        with transaction.atomic():
            automation.steps.all().delete()
            _create_steps(automation, serializer.validated_data["steps"])

        return Response(AutomationSerializer(automation).data)


class AutomationLogsView(APIView):
    """Run history for one automation, newest first."""

    def get(self, request, automation_id):
        if not Automation.objects.filter(id=automation_id, user=request.user).exists():
            return _not_found()

        logs = AutomationLog.objects.filter(automation_id=automation_id, user=request.user)
        log_status = request.query_params.get("status")
        if log_status:
            if log_status not in LogStatus.values:
                return Response({"detail": f"Unknown status {log_status}"}, status=status.HTTP_400_BAD_REQUEST)
            logs = logs.filter(status=log_status)

        try:
            limit = min(max(int(request.query_params.get("limit", 50)), 1), 200)
        except ValueError:
            return Response({"detail": "limit must be an integer"}, status=status.HTTP_400_BAD_REQUEST)
        logs = logs.order_by("-timestamp")[:limit]
        return Response(AutomationLogSerializer(logs, many=True).data)
