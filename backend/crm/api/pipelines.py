"""
Pipeline API: the Kanban board.

A contact sits in the column of its latest stage assignment. Contacts with no
assignment fall back to the first stage of the first pipeline.
"""
from django.db import transaction
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status

from crm.models import Contact, ContactStage, Pipeline, Stage, Task
from crm.serializers import (
    PipelineSerializer, PipelineCreateSerializer,
    StageCreateSerializer, StageSerializer, StageReorderSerializer,
)
from crm.services.pipeline_service import ensure_default_pipeline


def _current_stage_ids(contact_ids):
    """contact_id → stage_id of its latest assignment."""
    current = {}
    rows = (
        ContactStage.objects
        .filter(contact_id__in=contact_ids)
        .order_by("contact_id", "-assigned_at")
        .values_list("contact_id", "stage_id")
    )
    for contact_id, stage_id in rows:
        current.setdefault(contact_id, stage_id)
    return current


class PipelineListCreateView(APIView):

    def get(self, request):
        ensure_default_pipeline(request.user.id)
        pipelines = (
            Pipeline.objects
            .filter(user=request.user)
            .prefetch_related("stages")
            .order_by("created_at")
        )
        return Response(PipelineSerializer(pipelines, many=True).data)

    def post(self, request):
        serializer = PipelineCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        with transaction.atomic():
            pipeline = Pipeline.objects.create(user=request.user, name=data["name"])
            Stage.objects.bulk_create([
                Stage(pipeline=pipeline, name=name, position=index)
                for index, name in enumerate(data["stages"])
            ])

        return Response(PipelineSerializer(pipeline).data, status=status.HTTP_201_CREATED)


class PipelineBoardView(APIView):

    def get(self, request):
        ensure_default_pipeline(request.user.id)
        pipelines = list(
            Pipeline.objects
            .filter(user=request.user)
            .prefetch_related("stages")
            .order_by("created_at")
        )

        columns = {}
        for pipeline in pipelines:
            for stage in pipeline.stages.all():
                columns[stage.id] = []

        first_stages = pipelines[0].stages.all() if pipelines else []
        fallback_stage_id = first_stages[0].id if first_stages else None

        contacts = list(Contact.objects.filter(user=request.user).order_by("-created_at"))
        current = _current_stage_ids([contact.id for contact in contacts])

        next_tasks = {}
        open_tasks = (
            Task.objects
            .filter(user=request.user, completed=False, contact__isnull=False)
            .order_by("due_date")
        )
        for task in open_tasks:
            next_tasks.setdefault(task.contact_id, task)

        for contact in contacts:
            stage_id = current.get(contact.id, fallback_stage_id)
            if stage_id is None:
                continue
            task = next_tasks.get(contact.id)
            columns.setdefault(stage_id, []).append({
                "id": str(contact.id),
                "name": contact.name,
                "email": contact.email,
                "phone": contact.phone,
                "tags": contact.tags,
                "created_at": contact.created_at,
                "next_task": {
                    "id": str(task.id),
                    "title": task.title,
                    "due_date": task.due_date,
                } if task else None,
            })

        board = [
            {
                "id": str(pipeline.id),
                "name": pipeline.name,
                "stages": [
                    {
                        "id": str(stage.id),
                        "name": stage.name,
                        "position": stage.position,
                        "contacts": columns.get(stage.id, []),
                    }
                    for stage in pipeline.stages.all()
                ],
            }
            for pipeline in pipelines
        ]
        return Response({"board": board})


class PipelineStageCreateView(APIView):

    def post(self, request, pipeline_id):
        serializer = StageCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        pipeline = Pipeline.objects.filter(id=pipeline_id, user=request.user).first()
        if not pipeline:
            return Response({"detail": "Pipeline not found"}, status=status.HTTP_404_NOT_FOUND)

        stage = Stage.objects.create(
            pipeline=pipeline,
            name=serializer.validated_data["name"],
            position=pipeline.stages.count(),
        )
        return Response(StageSerializer(stage).data, status=status.HTTP_201_CREATED)


class PipelineStageReorderView(APIView):

    def put(self, request, pipeline_id):
        serializer = StageReorderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        pipeline = Pipeline.objects.filter(id=pipeline_id, user=request.user).first()
        if not pipeline:
            return Response({"detail": "Pipeline not found"}, status=status.HTTP_404_NOT_FOUND)

        with transaction.atomic():
            for index, stage_id in enumerate(serializer.validated_data["stage_order"]):
                Stage.objects.filter(id=stage_id, pipeline=pipeline).update(position=index)

        return Response({"message": "Reordered"})
