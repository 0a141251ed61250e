"""Extraction of listings and descriptions from fetched pages.

Pages embed their state as a ``ytInitialData`` JSON blob. The helpers in
this module walk that tree and map the parts the feed needs into the
typed structures from :mod:`.types`. Missing required fields raise
:class:`~shortsfeed.exceptions.StructuralDataMissing` instead of being
replaced with defaults.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

from bs4 import BeautifulSoup  # type: ignore
from django.utils.dateparse import parse_date, parse_datetime

from ..exceptions import StructuralDataMissing
from .types import AbsoluteUrl, Annotation, LinkDescriptor, RedirectWrapper, RelativePath

logger = logging.getLogger(__name__)

INITIAL_DATA_RE = re.compile(r"var ytInitialData = (.*?);</script>", re.DOTALL)
UNAVAILABLE_MARKER = "IS_UNAVAILABLE_PAGE"
HASHTAG_PAGE_TYPE = "WEB_PAGE_TYPE_BROWSE"
TITLE_SUFFIX = " - YouTube"

_MISSING = object()


@dataclass(frozen=True)
class ListingEntry:
    """A video discovered on the channel's shorts tab."""

    video_id: str
    title: Optional[str]


@dataclass(frozen=True)
class PageMetadata:
    """Author and publish date scraped from a watch page's markup."""

    author: Optional[str]
    published: Optional[datetime]


def dig(data: Any, *path: Any, default: Any = _MISSING) -> Any:
    """Walk nested dicts/lists along ``path``.

    Raises :class:`StructuralDataMissing` naming the failing step unless a
    ``default`` is given.
    """

    node = data
    for step in path:
        try:
            node = node[step]
        except (KeyError, IndexError, TypeError):
            if default is not _MISSING:
                return default
            trail = ".".join(str(item) for item in path)
            raise StructuralDataMissing(f"Missing {step!r} while reading {trail}") from None
    return node


def make_soup(html: str) -> BeautifulSoup:
    try:
        return BeautifulSoup(html, 'lxml')
    except Exception:
        # Fallback to html.parser if lxml isn't installed
        return BeautifulSoup(html, 'html.parser')


def extract_initial_data(html: str) -> Optional[Dict[str, Any]]:
    """Return the decoded ``ytInitialData`` object, or ``None``."""

    match = INITIAL_DATA_RE.search(html)
    if not match:
        logger.debug("Could not find ytInitialData")
        return None
    try:
        return json.loads(match.group(1))
    except json.JSONDecodeError:
        logger.warning("ytInitialData is not valid JSON")
        return None


def page_title(soup: BeautifulSoup) -> str:
    """Return the document title without the site suffix."""

    title = soup.find('title')
    text = title.get_text() if title else ''
    return text.replace(TITLE_SUFFIX, '').strip()


def channel_icon(data: Dict[str, Any]) -> Optional[str]:
    return dig(data, 'metadata', 'channelMetadataRenderer', 'avatar', 'thumbnails', 0, 'url', default=None)


def _shorts_grid(data: Dict[str, Any]) -> List[Any]:
    tabs = dig(data, 'contents', 'twoColumnBrowseResultsRenderer', 'tabs')
    for tab in tabs:
        grid = dig(tab, 'tabRenderer', 'content', 'richGridRenderer', 'contents', default=None)
        if grid is not None:
            return grid
    raise StructuralDataMissing('No tab with a rich grid in the channel listing')


def listing_entries(data: Dict[str, Any]) -> List[ListingEntry]:
    """Return the shorts listed on a channel page, in page order."""

    entries: List[ListingEntry] = []
    for item in _shorts_grid(data):
        if 'richItemRenderer' not in item:
            continue
        lockup = dig(item, 'richItemRenderer', 'content', 'shortsLockupViewModel')
        video_id = dig(lockup, 'onTap', 'innertubeCommand', 'reelWatchEndpoint', 'videoId')
        title = dig(lockup, 'overlayMetadata', 'primaryText', 'content', default=None)
        entries.append(ListingEntry(video_id=video_id, title=title))
    return entries


def link_descriptor(url: str) -> LinkDescriptor:
    """Classify a command URL into one of the link descriptor variants.

    The ``q`` value of a redirect URL is kept percent-encoded; the
    resolver decodes it.
    """

    parsed = urlparse(url)
    if parsed.path == '/redirect':
        for pair in parsed.query.split('&'):
            key, _, value = pair.partition('=')
            if key == 'q':
                return RedirectWrapper(query_target=value)
        raise StructuralDataMissing(f'Redirect link without a target: {url}')
    if parsed.netloc:
        return AbsoluteUrl(url=url)
    return RelativePath(path=url)


def annotation_from_run(run: Dict[str, Any]) -> Annotation:
    """Map one ``commandRuns`` entry into an :class:`Annotation`."""

    start = dig(run, 'startIndex')
    length = dig(run, 'length')
    metadata = dig(run, 'onTap', 'innertubeCommand', 'commandMetadata', 'webCommandMetadata', default=None)
    if metadata is None:
        return Annotation(approx_start=start, length=length, is_hashtag=False, link=None)

    return Annotation(
        approx_start=start,
        length=length,
        is_hashtag=metadata.get('webPageType') == HASHTAG_PAGE_TYPE,
        link=link_descriptor(dig(metadata, 'url')),
    )


def video_description(data: Dict[str, Any]) -> Tuple[str, List[Annotation]]:
    """Return the plain description and its link annotations."""

    contents = dig(data, 'contents', 'twoColumnWatchNextResults', 'results', 'results', 'contents')
    secondary = None
    for item in contents:
        if 'videoSecondaryInfoRenderer' in item:
            secondary = item['videoSecondaryInfoRenderer']
            break
    if secondary is None:
        raise StructuralDataMissing('Could not find videoSecondaryInfoRenderer')

    description = dig(secondary, 'attributedDescription', default={})
    text = description.get('content', '')
    runs = description.get('commandRuns', [])
    return text, [annotation_from_run(run) for run in runs]


def page_metadata(soup: BeautifulSoup) -> PageMetadata:
    """Scrape author and publish date from a watch page."""

    author = None
    author_el = soup.select_one('span[itemprop=author] > link[itemprop=name]')
    if author_el is not None:
        author = author_el.get('content')

    published = None
    date_el = soup.select_one('meta[itemprop=datePublished]')
    if date_el is not None:
        raw = date_el.get('content', '')
        published = parse_datetime(raw)
        if published is None:
            day = parse_date(raw)
            if day is not None:
                published = datetime(day.year, day.month, day.day)

    return PageMetadata(author=author, published=published)


def is_unavailable(html: str) -> bool:
    return UNAVAILABLE_MARKER in html
