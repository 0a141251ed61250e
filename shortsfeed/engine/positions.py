"""Drift-correcting search for annotation windows.

Annotation offsets produced upstream are counted with a different
codepoint convention than Python strings use: characters outside the
basic multilingual plane (emoji mostly) can be counted twice, so every
such character before a link pushes the declared offset one position
further right. The corrector walks backwards from the declared offset
until it finds a window of the declared length that sits on plausible
token boundaries, and remembers the skew it found so the next
annotation starts closer to its real position.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from .config import BoundaryChars
from .types import Annotation, MatchedRange

logger = logging.getLogger(__name__)


def max_positions(annotations: Sequence[Annotation], text_length: int) -> List[int]:
    """Return the highest start position each annotation may take.

    Every annotation must leave room for the ones after it. Walking the
    list backwards, the lengths of the remaining annotations are summed,
    with one extra position reserved whenever an annotation's declared
    end lies before the declared start of its successor.
    """

    ceilings = [0] * len(annotations)
    total = 0
    next_start = 0
    for index in range(len(annotations) - 1, -1, -1):
        annotation = annotations[index]
        if annotation.approx_start + annotation.length < next_start:
            total += 1
        total += annotation.length
        ceilings[index] = text_length - total
        next_start = annotation.approx_start
    return ceilings


def _start_is_boundary(text: str, position: int, is_hashtag: bool, boundaries: BoundaryChars) -> bool:
    if position == 0:
        return True
    if text[position - 1] in boundaries.start:
        return True
    return is_hashtag and position < len(text) and text[position] == "#"


def _end_is_boundary(text: str, end: int, is_hashtag: bool, boundaries: BoundaryChars) -> bool:
    if end == len(text):
        return True
    if end > len(text):
        return False
    allowed = boundaries.hashtag_end if is_hashtag else boundaries.end
    return text[end] in allowed


def correct_position(
    text: str,
    annotation: Annotation,
    url: str,
    drift: int,
    min_position: int,
    max_position: int,
    boundaries: BoundaryChars,
) -> Tuple[Optional[MatchedRange], int]:
    """Locate the exact window for ``annotation``.

    Returns ``(range, drift)``. ``range`` is ``None`` when no candidate at
    or above ``min_position`` passes the boundary checks, in which case
    ``drift`` is returned unchanged.
    """

    length = annotation.length
    position = min(annotation.approx_start - drift, max_position)

    while position >= min_position:
        # A link may end with a line break but never contain one
        newline = text.find("\n", position)
        if newline != -1 and newline < position + (length - 1):
            position = newline - (length - 1)
            continue

        end = position + length
        if _start_is_boundary(text, position, annotation.is_hashtag, boundaries) and _end_is_boundary(
            text, end, annotation.is_hashtag, boundaries
        ):
            drift = annotation.approx_start - position
            if length > 0 and text[end - 1] == "\n":
                length -= 1
            return MatchedRange(start=position, length=length, url=url), drift

        position -= 1

    logger.debug(
        'Position %d cannot be corrected in "%s..."',
        annotation.approx_start,
        text[:50],
    )
    return None, drift
