"""
Cron API: the HTTP trigger for the periodic sweep.

Called by an external scheduler with a shared secret in the body. Returns a
bare acknowledgment; the sweeps themselves run on the django-q cluster.
"""
import hmac
import logging

from django.conf import settings
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status

from crm.serializers import CronRunSerializer
from crm.services.sweep import dispatch_sweep

logger = logging.getLogger(__name__)


class CronRunView(APIView):
    authentication_classes = []
    permission_classes = []

    def post(self, request):
        serializer = CronRunSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        secret = serializer.validated_data["secret"].encode()
        expected = (settings.CRON_SECRET or "").encode()
        if not expected or not hmac.compare_digest(secret, expected):
            logger.warning("Rejected cron call with a bad secret")
            return Response({"message": "Unauthorized cron"}, status=status.HTTP_401_UNAUTHORIZED)

        dispatch_sweep()
        return Response({"ok": True})
