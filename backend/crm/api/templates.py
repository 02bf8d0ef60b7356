"""Email template API. A tenant's first listing seeds the default templates."""
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status

from crm.models import EmailTemplate
from crm.serializers import EmailTemplateSerializer
from crm.services.template_service import ensure_default_templates


class TemplateListCreateView(APIView):

    def get(self, request):
        ensure_default_templates(request.user.id)
        templates = EmailTemplate.objects.filter(user=request.user).order_by("-updated_at")
        return Response(EmailTemplateSerializer(templates, many=True).data)

    def post(self, request):
        serializer = EmailTemplateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        template = serializer.save(user=request.user)
        return Response(EmailTemplateSerializer(template).data, status=status.HTTP_201_CREATED)


class TemplateDetailView(APIView):

    def patch(self, request, template_id):
        template = EmailTemplate.objects.filter(id=template_id, user=request.user).first()
        if not template:
            return Response({"detail": "Template not found"}, status=status.HTTP_404_NOT_FOUND)

        serializer = EmailTemplateSerializer(template, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)

    def delete(self, request, template_id):
        template = EmailTemplate.objects.filter(id=template_id, user=request.user).first()
        if not template:
            return Response({"detail": "Template not found"}, status=status.HTTP_404_NOT_FOUND)
        template.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)
