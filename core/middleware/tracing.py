"""
Tracing middleware for OpenTelemetry.

Opens a server span per request and records the calling organization
and the outcome on it.
"""

import time
from typing import Callable

from django.http import HttpRequest, HttpResponse
from opentelemetry.trace import Status, StatusCode

from core.instrumentation import get_tracer

tracer = get_tracer(__name__)

SENSITIVE_QUERY_KEYS = ("password", "secret", "token", "key", "api_key", "payment_token")


class TracingMiddleware:
    """
    Middleware to add distributed tracing to requests.
    """

    def __init__(self, get_response: Callable):
        """Initialize middleware."""
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        """Process request with tracing."""
        with tracer.start_as_current_span(f"{request.method} {request.path}") as span:
            self._set_request_attributes(span, request)
            span_context = span.get_span_context()
            if span_context.is_valid:
                request.trace_id = format(span_context.trace_id, "032x")  # type: ignore

            start_time = time.time()
            try:
                response = self.get_response(request)
            except Exception as e:
                span.set_attribute("http.duration_ms", round((time.time() - start_time) * 1000, 2))
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, f"{type(e).__name__}: {e}"))
                raise

            span.set_attribute("http.status_code", response.status_code)
            span.set_attribute("http.duration_ms", round((time.time() - start_time) * 1000, 2))
            organization = getattr(request, "organization", None)
            if organization is not None:
                span.set_attribute("organization.id", str(organization.id))
                span.set_attribute("organization.type", str(organization.type))
            if response.status_code >= 400:
                span.set_status(Status(StatusCode.ERROR, f"HTTP {response.status_code}"))
            else:
                span.set_status(Status(StatusCode.OK))
            return response

    def _set_request_attributes(self, span, request: HttpRequest):
        """Set attributes from the request."""
        span.set_attribute("http.method", request.method)
        span.set_attribute("http.route", request.path)
        span.set_attribute("http.scheme", request.scheme)
        span.set_attribute("http.user_agent", request.META.get("HTTP_USER_AGENT", ""))
        if "X-API-Key" in request.headers:
            span.set_attribute("http.request.has_api_key", True)
        for key, value in list(request.GET.items())[:10]:
            if key.lower() not in SENSITIVE_QUERY_KEYS:
                span.set_attribute(f"http.request.query.{key}", str(value)[:200])
