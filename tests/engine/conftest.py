"""Shared fixtures for engine tests."""

from __future__ import annotations

import pytest

from shortsfeed.engine.config import load_config
from shortsfeed.engine.types import Annotation, LinkDescriptor, RelativePath

BASE_URL = "https://site.example"


@pytest.fixture()
def engine_config():
    """Provide a fresh copy of the default engine configuration."""

    return load_config(None)


@pytest.fixture()
def boundaries(engine_config):
    return engine_config.boundaries()


def make_annotation(
    start: int,
    length: int,
    path: str | None = None,
    *,
    hashtag: bool = False,
    link: LinkDescriptor | None = None,
) -> Annotation:
    if link is None and path is not None:
        link = RelativePath(path)
    return Annotation(approx_start=start, length=length, is_hashtag=hashtag, link=link)
