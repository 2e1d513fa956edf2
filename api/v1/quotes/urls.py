"""
URL configuration for quote endpoints.
"""

from django.urls import path

from api.v1.quotes import views

urlpatterns = [
    path("preview", views.QuotePreviewView.as_view(), name="preview-quote"),
]
