"""
URL configuration for dashboard endpoints.
"""

from django.urls import path

from api.v1.dashboard import views

urlpatterns = [
    path("stats", views.FleetStatsView.as_view(), name="fleet-stats"),
    path("clients", views.ClientOverviewView.as_view(), name="client-overview"),
]
