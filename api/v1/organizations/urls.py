"""
URL configuration for organization endpoints.
"""

from django.urls import path

from api.v1.organizations import views

urlpatterns = [
    path("me", views.CurrentOrganizationView.as_view(), name="current-organization"),
    path("me/quote-settings", views.QuoteSettingsView.as_view(), name="quote-settings"),
]
