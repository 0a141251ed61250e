"""Configuration helpers for the reconstruction engine and feed collector."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet

import yaml

# ASCII whitespace, NUL and the non-breaking space variants
WHITESPACE_CHARS = " \t\n\r\0\x0b\u00a0\u2060\u202f\u2007"


@dataclass(frozen=True)
class BoundaryChars:
    """Characters allowed immediately around a linkable token."""

    start: FrozenSet[str]
    end: FrozenSet[str]
    hashtag_end: FrozenSet[str]
    display_trim: str
    display_lead_trim: str


@dataclass(frozen=True)
class EngineConfig:
    """Typed wrapper around the engine configuration dictionary."""

    raw: Dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        return self.raw.get(key, default)

    @property
    def base_url(self) -> str:
        return self.raw.get("base_url", DEFAULTS["base_url"]).rstrip("/")

    def boundaries(self) -> BoundaryChars:
        whitespace = set(self.raw.get("whitespace_chars", WHITESPACE_CHARS))
        start = whitespace | set(self.raw.get("boundary_start_chars", []))
        end = whitespace | set(self.raw.get("boundary_end_chars", []))
        hashtag_end = end | set(self.raw.get("hashtag_boundary_end_chars", []))
        return BoundaryChars(
            start=frozenset(start),
            end=frozenset(end),
            hashtag_end=frozenset(hashtag_end),
            display_trim="".join(sorted(whitespace)),
            display_lead_trim="".join(self.raw.get("display_trim_chars", [])),
        )


DEFAULTS: Dict[str, Any] = {
    "base_url": "https://www.youtube.com",
    "item_limit": 99,
    "max_workers": 4,
    "fetch_timeout": 15,
    "accept_language": "en-US",
    "page_cache_ttl": 86400 * 3,
    "rate_limit_cooldown": 60 * 16,
    "whitespace_chars": WHITESPACE_CHARS,
    "boundary_start_chars": [":", "-", "("],
    "boundary_end_chars": [",", ".", "'", ")"],
    "hashtag_boundary_end_chars": ["#", "-"],
    # Renderer artifacts such as "ICON • Video" or "ICON / @Channel"
    "display_trim_chars": ["\u2022", "/"],
}


def load_config(path: str | Path | None = None) -> EngineConfig:
    """Load configuration from YAML, merging with defaults."""

    data: Dict[str, Any] = copy.deepcopy(DEFAULTS)

    if path is not None and Path(path).exists():
        with Path(path).open("r", encoding="utf-8") as stream:
            user = yaml.safe_load(stream) or {}
        merge_into(data, user)

    return EngineConfig(data)


def merge_into(base: Dict[str, Any], override: Dict[str, Any]) -> None:
    """Recursively merge override into base dict."""

    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            merge_into(base[key], value)
        else:
            base[key] = value
