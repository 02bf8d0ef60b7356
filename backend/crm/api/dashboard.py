"""Dashboard API: headline counts for the signed-in tenant."""
from rest_framework.views import APIView
from rest_framework.response import Response

from crm.models import Contact, ContactStage, Task

WON_STAGE_NAME = "Won"


class DashboardView(APIView):

    def get(self, request):
        # Wins count every move into a "Won" stage, so a contact won twice counts twice
        wins = ContactStage.objects.filter(
            contact__user=request.user,
            stage__name=WON_STAGE_NAME,
        ).count()

        return Response({
            "stats": {
                "contact_count": Contact.objects.filter(user=request.user).count(),
                "open_tasks": Task.objects.filter(user=request.user, completed=False).count(),
                "wins": wins,
            },
        })
