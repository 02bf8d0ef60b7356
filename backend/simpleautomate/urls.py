"""
Root URL configuration for SimpleAutomate.

The React client is deployed separately; Django only serves the JSON API.
"""
from django.urls import path, include
from django.http import JsonResponse


def health_check(request):
    return JsonResponse({"status": "healthy"})


urlpatterns = [
    path('api/', include('crm.urls')),
    path('health', health_check),
]
