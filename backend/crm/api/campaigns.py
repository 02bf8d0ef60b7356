"""
Campaign API.

POST without scheduled_for sends right away; with it, the campaign waits as
SCHEDULED for the periodic sweep.
"""
import logging

from django.db import transaction
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status

from crm.models import Contact, EmailCampaign, EmailCampaignRecipient, CampaignStatus
from crm.serializers import EmailCampaignSerializer, EmailCampaignCreateSerializer
from crm.services.campaign_service import dispatch_campaign_now

logger = logging.getLogger(__name__)


class CampaignListCreateView(APIView):

    def get(self, request):
        campaigns = (
            EmailCampaign.objects
            .filter(user=request.user)
            .prefetch_related("recipients")
            .order_by("-created_at")
        )
        return Response(EmailCampaignSerializer(campaigns, many=True).data)

    def post(self, request):
        serializer = EmailCampaignCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        scheduled_for = data.get("scheduled_for")

        # Ids belonging to other tenants are dropped silently
        contact_ids = list(
            Contact.objects
            .filter(id__in=data["contact_ids"], user=request.user)
            .values_list("id", flat=True)
        )

        with transaction.atomic():
            campaign = EmailCampaign.objects.create(
                user=request.user,
                name=data["name"],
                subject=data["subject"],
                body=data["body"],
                status=CampaignStatus.SCHEDULED if scheduled_for else CampaignStatus.SENDING,
                scheduled_for=scheduled_for,
            )
            EmailCampaignRecipient.objects.bulk_create([
                EmailCampaignRecipient(campaign=campaign, contact_id=contact_id)
                for contact_id in contact_ids
            ])

        if not scheduled_for:
            try:
                dispatch_campaign_now(campaign.id)
            except Exception as e:
                logger.exception("Campaign %s dispatch failed", campaign.id)
                return Response(
                    {"detail": f"Dispatch failed: {str(e)}"},
                    status=status.HTTP_502_BAD_GATEWAY,
                )
            campaign.refresh_from_db()

        return Response(EmailCampaignSerializer(campaign).data, status=status.HTTP_201_CREATED)


class CampaignDetailView(APIView):

    def delete(self, request, campaign_id):
        campaign = EmailCampaign.objects.filter(id=campaign_id, user=request.user).first()
        if not campaign:
            return Response({"detail": "Campaign not found"}, status=status.HTTP_404_NOT_FOUND)
        campaign.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)
