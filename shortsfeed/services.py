"""Service functions for collecting a channel's shorts into a feed.

These functions encapsulate the I/O around the reconstruction engine so
they can be unit tested and reused from the views. They fetch the
channel listing and each video's watch page, pull the description and
its link annotations out of the embedded data, rebuild the linked
description and assemble the result into feed items.
"""

from __future__ import annotations

import gzip
import hashlib
import logging
import urllib.error
import urllib.request
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional
from urllib.parse import quote_plus

from django.core.cache import cache
from django.utils import feedgenerator

from .engine import extract
from .engine.config import EngineConfig, load_config
from .engine.reconstruct import reconstruct
from .exceptions import FetchError, StructuralDataMissing, UpstreamRateLimited
from .middleware import UpstreamRateLimitGate

logger = logging.getLogger(__name__)

PAGE_CACHE_PREFIX = 'shortsfeed:page'


@dataclass(frozen=True)
class FeedItem:
    """A single short ready to be written into a feed."""

    video_id: str
    title: Optional[str]
    author: str
    published: Optional[datetime]
    link: str
    thumbnail: str
    content: str


@dataclass(frozen=True)
class ShortsFeed:
    """Channel-level feed metadata plus its items."""

    title: str
    link: str
    icon: Optional[str]
    items: List[FeedItem] = field(default_factory=list)


@dataclass(frozen=True)
class VideoDetails:
    author: Optional[str] = None
    published: Optional[datetime] = None
    description: str = ''


def channel_source_path(
    username: str | None = None,
    channel: str | None = None,
    custom: str | None = None,
) -> str:
    """Return the site path for a channel, preferring username then id."""

    if username:
        return '/user/' + quote_plus(username)
    if channel:
        return '/channel/' + quote_plus(channel)
    if custom:
        return '/' + quote_plus(custom)
    raise ValueError('A username, channel id or custom name is required.')


def _page_cache_key(url: str) -> str:
    return f"{PAGE_CACHE_PREFIX}:{hashlib.sha1(url.encode('utf-8')).hexdigest()}"


def fetch_page(url: str, config: EngineConfig, *, cached: bool = False) -> str:
    """Fetch ``url`` and return its decoded text.

    Cached pages are kept in the default cache for ``page_cache_ttl``
    seconds. Cache misses are refused while the upstream gate is closed,
    and a ``429`` answer closes it; both raise
    :class:`UpstreamRateLimited`; any other failure raises
    :class:`FetchError`.
    """

    if cached:
        hit = cache.get(_page_cache_key(url))
        if hit is not None:
            return hit

    gate = UpstreamRateLimitGate(config.get('rate_limit_cooldown'))
    if not gate.should_proceed():
        raise UpstreamRateLimited(f'Upstream rate limit cooldown in effect, not fetching {url}')

    request = urllib.request.Request(url, headers={'Accept-Language': config.get('accept_language', 'en-US')})
    try:
        with urllib.request.urlopen(request, timeout=config.get('fetch_timeout', 15)) as resp:
            data = resp.read()
            if resp.headers.get('Content-Encoding', '') == 'gzip':
                data = gzip.decompress(data)
            encoding = resp.headers.get_content_charset() or 'utf-8'
    except urllib.error.HTTPError as exc:
        if exc.code == 429:
            gate.record_failure()
            raise UpstreamRateLimited(f'Upstream rate limit hit while fetching {url}') from exc
        raise FetchError(f'HTTP {exc.code} while fetching {url}') from exc
    except (urllib.error.URLError, OSError) as exc:
        logger.warning('Fetching %s failed: %s', url, exc)
        raise FetchError(f'Unable to fetch {url}') from exc

    text = data.decode(encoding, errors='replace')
    if cached:
        cache.set(_page_cache_key(url), text, timeout=config.get('page_cache_ttl'))
    return text


def fetch_video_details(video_id: str, config: EngineConfig) -> VideoDetails:
    """Return author, publish date and linked description for one short.

    Unavailable videos yield empty details. Watch pages without embedded
    data keep whatever the markup offered.
    """

    html = fetch_page(f'{config.base_url}/watch?v={video_id}', config, cached=True)
    if extract.is_unavailable(html):
        return VideoDetails()

    meta = extract.page_metadata(extract.make_soup(html))
    data = extract.extract_initial_data(html)
    if not data or 'contents' not in data:
        return VideoDetails(author=meta.author, published=meta.published)

    try:
        text, annotations = extract.video_description(data)
    except StructuralDataMissing as exc:
        raise StructuralDataMissing(f'{exc}. Error at: {video_id}') from exc

    result = reconstruct(text, annotations, config.base_url, config)
    return VideoDetails(author=meta.author, published=meta.published, description=result.as_html())


def thumbnail_url(video_id: str, config: EngineConfig) -> str:
    image_host = config.base_url.replace('/www.', '/img.')
    return f'{image_host}/vi/{video_id}/0.jpg'


def build_item(entry: extract.ListingEntry, details: VideoDetails, config: EngineConfig) -> FeedItem:
    link = f'{config.base_url}/watch?v={entry.video_id}'
    thumbnail = thumbnail_url(entry.video_id, config)
    # The description is already feed markup from reconstruct(); it is not escaped again
    content = f'<a href="{link}"><img src="{thumbnail}" /></a><br />{details.description}'
    return FeedItem(
        video_id=entry.video_id,
        title=entry.title,
        author=details.author or '',
        published=details.published,
        link=link,
        thumbnail=thumbnail,
        content=content,
    )


def collect_feed(source_path: str, item_limit: int | None = None, config: EngineConfig | None = None) -> ShortsFeed:
    """Collect the newest shorts for a channel.

    The listing page is fetched first; each video's watch page is then
    fetched on a bounded thread pool, keeping listing order.
    """

    engine_config = config or load_config(None)
    gate = UpstreamRateLimitGate(engine_config.get('rate_limit_cooldown'))
    if not gate.should_proceed():
        raise UpstreamRateLimited('Upstream rate limit cooldown in effect')

    feed_url = f'{engine_config.base_url}{source_path}/shorts'
    html = fetch_page(feed_url, engine_config)
    data = extract.extract_initial_data(html)
    if not data or 'contents' not in data:
        raise StructuralDataMissing('Unable to get data from the channel page')

    limit = item_limit or engine_config.get('item_limit')
    entries = extract.listing_entries(data)[:limit]
    workers = max(1, int(engine_config.get('max_workers', 4)))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        details = list(pool.map(lambda entry: fetch_video_details(entry.video_id, engine_config), entries))

    items = [build_item(entry, detail, engine_config) for entry, detail in zip(entries, details)]
    title = extract.page_title(extract.make_soup(html))
    return ShortsFeed(
        title=f'{title}{extract.TITLE_SUFFIX}',
        link=feed_url,
        icon=extract.channel_icon(data),
        items=items,
    )


class ShortsRssFeed(feedgenerator.Rss201rev2Feed):
    """RSS 2.0 feed that also advertises the channel avatar."""

    def add_root_elements(self, handler):
        super().add_root_elements(handler)
        icon = self.feed.get('icon')
        if icon:
            handler.startElement('image', {})
            handler.addQuickElement('url', icon)
            handler.addQuickElement('title', self.feed['title'])
            handler.addQuickElement('link', self.feed['link'])
            handler.endElement('image')


class ShortsAtomFeed(feedgenerator.Atom1Feed):
    """Atom feed that also advertises the channel avatar."""

    def add_root_elements(self, handler):
        super().add_root_elements(handler)
        icon = self.feed.get('icon')
        if icon:
            handler.addQuickElement('icon', icon)


def render_feed(feed: ShortsFeed, fmt: str = 'rss') -> feedgenerator.SyndicationFeed:
    """Build an RSS 2.0 or Atom document for ``feed``."""

    feed_class = ShortsAtomFeed if fmt == 'atom' else ShortsRssFeed
    document = feed_class(
        title=feed.title,
        link=feed.link,
        description=f'Newest shorts from {feed.title}',
        language='en',
        icon=feed.icon,
    )
    for item in feed.items:
        document.add_item(
            title=item.title or item.video_id,
            link=item.link,
            description=item.content,
            unique_id=item.video_id,
            author_name=item.author or None,
            pubdate=item.published,
        )
    return document
