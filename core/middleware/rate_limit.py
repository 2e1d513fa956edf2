"""
Rate limiting middleware.

Fixed-window rate limiting per API key, counted in the Django cache.
"""

import hashlib
import time
from typing import Callable, Tuple

from django.conf import settings
from django.core.cache import cache
from django.http import HttpRequest, HttpResponse, JsonResponse

from core.metrics import errors_total
from core.middleware.auth import PROTECTED_PREFIX, extract_api_key


class RateLimitMiddleware:
    """
    Rate limiting middleware per API key.

    Limits come from ``API_RATE_LIMIT`` (requests per window) and
    ``API_RATE_LIMIT_WINDOW`` (seconds); defaults are 100 per minute.
    """

    DEFAULT_RATE_LIMIT = 100
    RATE_LIMIT_WINDOW = 60

    def __init__(self, get_response: Callable):
        """Initialize middleware."""
        self.get_response = get_response
        self.limit = int(getattr(settings, "API_RATE_LIMIT", self.DEFAULT_RATE_LIMIT))
        self.window = int(getattr(settings, "API_RATE_LIMIT_WINDOW", self.RATE_LIMIT_WINDOW))

    def _check_rate_limit(self, api_key: str) -> Tuple[bool, int, int]:
        """
        Count this request against the key's current window.

        Returns:
            Tuple of (is_allowed, remaining, reset_time)
        """
        key_hash = hashlib.sha256(api_key.encode()).hexdigest()[:16]
        window_start = int(time.time() / self.window)
        reset_time = (window_start + 1) * self.window
        cache_key = f"rate_limit:{key_hash}:{window_start}"

        if cache.get(cache_key, 0) >= self.limit:
            return False, 0, reset_time
        try:
            count = cache.incr(cache_key, 1)
        except ValueError:
            cache.set(cache_key, 1, timeout=self.window)
            count = 1
        return True, max(0, self.limit - count), reset_time

    def __call__(self, request: HttpRequest) -> HttpResponse:
        """
        Process request with rate limiting.

        Args:
            request: HTTP request

        Returns:
            HTTP response with rate limit headers
        """
        if not request.path.startswith(PROTECTED_PREFIX):
            return self.get_response(request)
        api_key = extract_api_key(request)
        if not api_key:
            # No API key, let auth middleware handle it
            return self.get_response(request)

        is_allowed, remaining, reset_time = self._check_rate_limit(api_key)
        if is_allowed:
            response = self.get_response(request)
        else:
            errors_total.labels(error_type="rate_limit_exceeded", endpoint=request.path).inc()
            response = JsonResponse(
                {
                    "error": {
                        "code": "RATE_LIMIT_EXCEEDED",
                        "message": "Rate limit exceeded. Please try again later.",
                    }
                },
                status=429,
            )
            response["Retry-After"] = str(max(0, reset_time - int(time.time())))

        response["X-RateLimit-Limit"] = str(self.limit)
        response["X-RateLimit-Remaining"] = str(remaining)
        response["X-RateLimit-Reset"] = str(reset_time)
        return response
