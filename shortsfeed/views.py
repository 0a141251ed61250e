"""Django views for the shortsfeed app.

The single public view turns a channel selector into an RSS or Atom feed
of the channel's newest shorts, with linked descriptions.
"""

from __future__ import annotations

import logging

from django.conf import settings
from django.http import HttpRequest, HttpResponse, HttpResponseBadRequest
from django.urls import reverse
from django.views.decorators.http import require_GET

from .engine.config import load_config
from .exceptions import FetchError, StructuralDataMissing, UpstreamRateLimited
from .forms import FeedQueryForm
from .services import channel_source_path, collect_feed, render_feed

logger = logging.getLogger(__name__)


@require_GET
def shorts_feed(request: HttpRequest) -> HttpResponse:
    """Render the shorts feed for the channel named in the query string."""

    form = FeedQueryForm(request.GET)
    if not form.is_valid():
        messages = [message for errors in form.errors.values() for message in errors]
        return HttpResponseBadRequest('\n'.join(messages), content_type='text/plain; charset=utf-8')

    source_path = channel_source_path(
        username=form.cleaned_data['u'],
        channel=form.cleaned_data['c'],
        custom=form.cleaned_data['custom'],
    )
    config = load_config(getattr(settings, 'SHORTSFEED_CONFIG', None))

    try:
        feed = collect_feed(source_path, form.cleaned_data['item_limit'], config)
    except UpstreamRateLimited as exc:
        response = HttpResponse(str(exc), status=429, content_type='text/plain; charset=utf-8')
        response['Retry-After'] = str(config.get('rate_limit_cooldown'))
        return response
    except (StructuralDataMissing, FetchError) as exc:
        logger.error('Unable to build feed for %s: %s', source_path, exc)
        return HttpResponse(str(exc), status=502, content_type='text/plain; charset=utf-8')

    document = render_feed(feed, form.cleaned_data['format'])
    response = HttpResponse(content_type=document.content_type)
    document.write(response, 'utf-8')
    return response


@require_GET
def robots_txt(request: HttpRequest) -> HttpResponse:
    """Keep crawlers away from the feed endpoint."""

    content = (
        "User-agent: *\n"
        f"Disallow: {reverse('shortsfeed:feed')}\n"
    )
    return HttpResponse(content, content_type='text/plain')
