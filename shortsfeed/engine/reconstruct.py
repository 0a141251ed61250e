"""Coordinator for rebuilding linked video descriptions."""

from __future__ import annotations

import logging
from typing import List, Sequence

from django.utils.html import escape

from .config import BoundaryChars, EngineConfig, load_config
from .positions import correct_position, max_positions
from .resolver import resolve_url
from .types import Annotation, Linked, MatchedRange, ReconstructionResult, Unlinked

logger = logging.getLogger(__name__)

ANCHOR_TEMPLATE = '<a href="{url}">{text}</a>'


def reconstruct(
    text: str,
    annotations: Sequence[Annotation],
    base_url: str | None = None,
    config: EngineConfig | None = None,
) -> ReconstructionResult:
    """Return ``text`` with every annotation turned into a link.

    If even one annotation cannot be placed the untouched text comes back
    as :class:`Unlinked`; a partially linked description is never
    produced.
    """

    if not annotations:
        return Unlinked(text)

    engine_config = config or load_config(None)
    boundaries = engine_config.boundaries()
    site_url = engine_config.base_url if base_url is None else base_url

    ranges = match_ranges(text, annotations, site_url, boundaries)
    if len(ranges) < len(annotations):
        logger.info(
            "Matched %d of %d links, leaving description unlinked",
            len(ranges),
            len(annotations),
        )
        return Unlinked(text)

    return Linked(apply_ranges(text, ranges, boundaries))


def match_ranges(
    text: str,
    annotations: Sequence[Annotation],
    base_url: str,
    boundaries: BoundaryChars,
) -> List[MatchedRange]:
    """Correct every annotation in order and return the accepted ranges."""

    ceilings = max_positions(annotations, len(text))
    ranges: List[MatchedRange] = []
    drift = 0

    for annotation, ceiling in zip(annotations, ceilings):
        if annotation.link is None:
            logger.debug("Skipping link without target at position %d", annotation.approx_start)
            continue
        url = resolve_url(annotation.link, base_url)
        floor = ranges[-1].end if ranges else 0
        matched, drift = correct_position(text, annotation, url, drift, floor, ceiling, boundaries)
        if matched is not None:
            ranges.append(matched)

    return ranges


def apply_ranges(text: str, ranges: Sequence[MatchedRange], boundaries: BoundaryChars) -> str:
    """Wrap each range in an anchor, splicing from the end of the text.

    ``ranges`` must be in ascending, non-overlapping order. Working from
    the last range backwards keeps the offsets of the earlier ranges valid
    while the text grows.
    """

    for matched in reversed(ranges):
        before = text[:matched.start]
        value = text[matched.start:matched.end]
        after = text[matched.end:]
        display = value.strip(boundaries.display_trim).lstrip(
            boundaries.display_trim + boundaries.display_lead_trim
        )
        # Only the href is escaped; description text stays verbatim so offsets
        # and the anchor-free text keep matching the source
        anchor = ANCHOR_TEMPLATE.format(url=escape(matched.url), text=display)
        text = before + anchor + after
    return text
