"""
URL configuration for renewal request endpoints.
"""

from django.urls import path

from api.v1.requests import views

urlpatterns = [
    path("", views.RenewalRequestListView.as_view(), name="requests"),
    path("incoming", views.IncomingRequestListView.as_view(), name="incoming-requests"),
    path("<uuid:request_id>/approve", views.ApproveRequestView.as_view(), name="approve-request"),
    path("<uuid:request_id>/reject", views.RejectRequestView.as_view(), name="reject-request"),
    path("<uuid:request_id>/respond", views.RespondWithQuoteView.as_view(), name="respond-request"),
    path(
        "<uuid:request_id>/quote/generate",
        views.GenerateQuoteView.as_view(),
        name="generate-quote",
    ),
    path("<uuid:request_id>/quote", views.QuoteArtifactView.as_view(), name="request-quote"),
]
