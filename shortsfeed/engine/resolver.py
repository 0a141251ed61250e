"""Resolution of link descriptors into absolute URLs."""

from __future__ import annotations

from urllib.parse import unquote_plus

from .types import AbsoluteUrl, LinkDescriptor, RedirectWrapper, RelativePath


def resolve_url(link: LinkDescriptor, base_url: str) -> str:
    """Return the absolute URL a descriptor points at.

    Redirect targets arrive still percent-encoded from the query string and
    are decoded exactly once here. Relative paths are appended to
    ``base_url`` verbatim.
    """

    if isinstance(link, RedirectWrapper):
        return unquote_plus(link.query_target)
    if isinstance(link, AbsoluteUrl):
        return link.url
    if isinstance(link, RelativePath):
        return base_url + link.path
    raise TypeError(f"Unsupported link descriptor: {link!r}")
