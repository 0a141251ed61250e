"""Exceptions raised by the shorts feed collaborators."""

from __future__ import annotations


class ShortsFeedError(Exception):
    """Base class for errors surfaced while building a feed."""


class StructuralDataMissing(ShortsFeedError):
    """Required fields are absent from a page's embedded data."""


class FetchError(ShortsFeedError):
    """A page could not be retrieved."""


class UpstreamRateLimited(ShortsFeedError):
    """The upstream site asked us to slow down, or still is in cooldown."""
