"""
URL configuration for device API endpoints.
"""

from django.urls import path

from api.v1.devices import views

urlpatterns = [
    path("", views.DeviceListView.as_view(), name="devices"),
    path("bulk-renew", views.BulkRenewView.as_view(), name="bulk-renew"),
    path("<uuid:device_id>", views.DeviceDetailView.as_view(), name="device-detail"),
    path("<uuid:device_id>/grace-token", views.GraceTokenView.as_view(), name="grace-token"),
    path("<uuid:device_id>/renewal-path", views.RenewalPathView.as_view(), name="renewal-path"),
]
