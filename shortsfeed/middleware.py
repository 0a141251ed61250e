from __future__ import annotations

import math
import time
from typing import Callable, List

from django.conf import settings
from django.core.cache import caches
from django.http import HttpRequest, HttpResponse
from django.urls import Resolver404, resolve

DEFAULT_THROTTLE_LIMIT = 30  # requests
DEFAULT_THROTTLE_WINDOW = 60  # seconds
DEFAULT_THROTTLE_KEY_PREFIX = 'shortsfeed:throttle'
UPSTREAM_RATE_LIMIT_KEY = 'shortsfeed:upstream-rate-limit'


def route_name(request: HttpRequest) -> str | None:
    """Return ``namespace:url_name`` for the request, resolving the path if needed."""

    match = getattr(request, 'resolver_match', None)
    if match is None:
        try:
            match = resolve(request.path_info)
        except Resolver404:
            return None
    return f'{match.namespace}:{match.url_name}' if match.namespace else match.url_name


def client_ip(request: HttpRequest) -> str:
    forwarded = request.META.get(getattr(settings, 'THROTTLE_IP_HEADER', 'HTTP_X_FORWARDED_FOR'))
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR', '0.0.0.0')


class SlidingWindowRateThrottle:
    """Limit feed requests per client IP over a sliding window.

    Feed requests are expensive: each one may fan out into dozens of
    upstream fetches. Only GET requests to ``THROTTLED_ROUTES`` are
    counted; the timestamps of recent hits are kept in the cache under one
    key per route and client. A rejected request gets a plain-text
    ``429`` whose ``Retry-After`` says when the oldest counted hit leaves
    the window.
    """

    def __init__(
        self,
        get_response: Callable[[HttpRequest], HttpResponse],
        *,
        limit: int | None = None,
        window: int | None = None,
        cache_alias: str = 'default',
        key_prefix: str | None = None,
    ) -> None:
        self.get_response = get_response
        self.limit = limit or getattr(settings, 'THROTTLE_LIMIT', DEFAULT_THROTTLE_LIMIT)
        self.window = window or getattr(settings, 'THROTTLE_WINDOW', DEFAULT_THROTTLE_WINDOW)
        self.cache = caches[cache_alias]
        self.key_prefix = key_prefix or getattr(settings, 'THROTTLE_KEY_PREFIX', DEFAULT_THROTTLE_KEY_PREFIX)

    def __call__(self, request: HttpRequest) -> HttpResponse:
        route = route_name(request) if request.method == 'GET' else None
        if route in getattr(settings, 'THROTTLED_ROUTES', []):
            retry_after = self.hit(f'{self.key_prefix}:{route}:{client_ip(request)}')
            if retry_after:
                response = HttpResponse(
                    'Too many feed requests, try again later.\n',
                    status=429,
                    content_type='text/plain; charset=utf-8',
                )
                response['Retry-After'] = str(retry_after)
                return response
        return self.get_response(request)

    def hit(self, key: str) -> int:
        """Count a hit for ``key``; return seconds to wait, or 0 if allowed."""

        now = time.time()
        recent: List[float] = [stamp for stamp in self.cache.get(key, []) if stamp > now - self.window]
        if len(recent) >= self.limit:
            return max(1, math.ceil(recent[0] + self.window - now))
        recent.append(now)
        self.cache.set(key, recent, timeout=self.window)
        return 0


def sliding_window_rate_throttle(get_response: Callable[[HttpRequest], HttpResponse]) -> SlidingWindowRateThrottle:
    return SlidingWindowRateThrottle(get_response)


class UpstreamRateLimitGate:
    """Process-wide record of the upstream site answering ``429``.

    :func:`~shortsfeed.services.fetch_page` asks :meth:`should_proceed`
    before every network request and calls :meth:`record_failure` when the
    upstream throttles us, which blocks further requests for ``cooldown``
    seconds.
    """

    def __init__(self, cooldown: int, *, cache_alias: str = 'default', key: str = UPSTREAM_RATE_LIMIT_KEY) -> None:
        self.cooldown = cooldown
        self.cache = caches[cache_alias]
        self.key = key

    def should_proceed(self) -> bool:
        return not self.cache.get(self.key, False)

    def record_failure(self) -> None:
        self.cache.set(self.key, True, timeout=self.cooldown)
