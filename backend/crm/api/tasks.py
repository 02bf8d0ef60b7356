"""Task API: tenant to-dos, optionally linked to a contact."""
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status

from crm.models import Contact, Task
from crm.serializers import TaskSerializer


def _contact_belongs_to(user, contact_id):
    return contact_id is None or Contact.objects.filter(id=contact_id, user=user).exists()


class TaskListCreateView(APIView):

    def get(self, request):
        tasks = Task.objects.filter(user=request.user)
        task_status = (request.query_params.get("status") or "").lower()
        if task_status == "completed":
            tasks = tasks.filter(completed=True)
        elif task_status == "pending":
            tasks = tasks.filter(completed=False)
        return Response(TaskSerializer(tasks.order_by("due_date"), many=True).data)

    def post(self, request):
        serializer = TaskSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        if not _contact_belongs_to(request.user, serializer.validated_data.get("contact_id")):
            return Response({"detail": "Contact not found"}, status=status.HTTP_404_NOT_FOUND)

        task = serializer.save(user=request.user)
        return Response(TaskSerializer(task).data, status=status.HTTP_201_CREATED)


class TaskDetailView(APIView):

    def patch(self, request, task_id):
        task = Task.objects.filter(id=task_id, user=request.user).first()
        if not task:
            return Response({"detail": "Task not found"}, status=status.HTTP_404_NOT_FOUND)

        serializer = TaskSerializer(task, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        if not _contact_belongs_to(request.user, serializer.validated_data.get("contact_id")):
            return Response({"detail": "Contact not found"}, status=status.HTTP_404_NOT_FOUND)

        # A new due date earns a fresh reminder
        if "due_date" in serializer.validated_data:
            serializer.validated_data["notification_sent"] = False
        serializer.save()
        return Response(serializer.data)

    def delete(self, request, task_id):
        task = Task.objects.filter(id=task_id, user=request.user).first()
        if not task:
            return Response({"detail": "Task not found"}, status=status.HTTP_404_NOT_FOUND)
        task.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)
