"""Typed data structures used by the description reconstruction engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from django.template.defaultfilters import linebreaksbr


@dataclass(frozen=True)
class RedirectWrapper:
    """Link wrapped in the site's ``/redirect?q=...`` interstitial."""

    query_target: str


@dataclass(frozen=True)
class AbsoluteUrl:
    """Link that already carries a scheme and host."""

    url: str


@dataclass(frozen=True)
class RelativePath:
    """Site-internal link such as ``/@channel`` or ``/hashtag/fun``."""

    path: str


LinkDescriptor = Union[RedirectWrapper, AbsoluteUrl, RelativePath]


@dataclass(frozen=True)
class Annotation:
    """A hint that some substring of a description should become a link.

    ``approx_start`` may drift from the true position by a few codepoints.
    ``link`` is ``None`` when the upstream run carried no navigation
    command; such annotations can never be placed.
    """

    approx_start: int
    length: int
    is_hashtag: bool
    link: Optional[LinkDescriptor]


@dataclass(frozen=True)
class MatchedRange:
    """Exact, boundary-validated window for one annotation."""

    start: int
    length: int
    url: str

    @property
    def end(self) -> int:
        return self.start + self.length


@dataclass(frozen=True)
class ReconstructionResult:
    """Outcome of one reconstruction pass."""

    text: str

    @property
    def linked(self) -> bool:
        return False

    def as_html(self) -> str:
        """Return the text with line breaks converted to ``<br>`` tags."""

        return linebreaksbr(self.text, autoescape=False)


@dataclass(frozen=True)
class Linked(ReconstructionResult):
    """Every annotation was placed; ``text`` carries anchor markup."""

    @property
    def linked(self) -> bool:
        return True


@dataclass(frozen=True)
class Unlinked(ReconstructionResult):
    """The original text, untouched."""
