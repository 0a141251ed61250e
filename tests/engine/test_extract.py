"""Embedded page data extraction tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from shortsfeed.engine import extract
from shortsfeed.engine.types import AbsoluteUrl, Annotation, RedirectWrapper, RelativePath
from shortsfeed.exceptions import StructuralDataMissing

from ..pages import channel_data, command_run, html_page, watch_data, watch_page


def test_initial_data_is_read_from_script():
    data = {"contents": {"value": "a;b</p>"}}
    assert extract.extract_initial_data(html_page(data)) == data


def test_missing_initial_data_returns_none():
    assert extract.extract_initial_data("<html><body>nothing</body></html>") is None


def test_link_descriptor_variants():
    redirect = extract.link_descriptor("/redirect?event=video_description&q=https%3A%2F%2Fshop.example%2F&v=abc")
    assert redirect == RedirectWrapper("https%3A%2F%2Fshop.example%2F")
    assert extract.link_descriptor("https://www.youtube.com/watch?v=x") == AbsoluteUrl(
        "https://www.youtube.com/watch?v=x"
    )
    assert extract.link_descriptor("/hashtag/fun") == RelativePath("/hashtag/fun")


def test_redirect_without_target_is_structural_error():
    with pytest.raises(StructuralDataMissing):
        extract.link_descriptor("/redirect?event=video_description")


def test_command_run_becomes_annotation():
    run = command_run(33, 4, "/hashtag/fun", page_type="WEB_PAGE_TYPE_BROWSE")
    assert extract.annotation_from_run(run) == Annotation(
        approx_start=33, length=4, is_hashtag=True, link=RelativePath("/hashtag/fun")
    )


def test_command_run_without_command_has_no_link():
    annotation = extract.annotation_from_run({"startIndex": 3, "length": 2})
    assert annotation.link is None


def test_command_run_requires_offsets():
    with pytest.raises(StructuralDataMissing, match="startIndex"):
        extract.annotation_from_run({"length": 2})


def test_video_description_returns_text_and_annotations():
    data = watch_data("by @Someone", [command_run(3, 8, "/@Someone")])
    text, annotations = extract.video_description(data)
    assert text == "by @Someone"
    assert annotations == [Annotation(approx_start=3, length=8, is_hashtag=False, link=RelativePath("/@Someone"))]


def test_video_description_without_runs():
    text, annotations = extract.video_description(watch_data("plain"))
    assert text == "plain"
    assert annotations == []


def test_video_description_requires_secondary_info():
    data = watch_data("x")
    data["contents"]["twoColumnWatchNextResults"]["results"]["results"]["contents"].pop()
    with pytest.raises(StructuralDataMissing, match="videoSecondaryInfoRenderer"):
        extract.video_description(data)


def test_video_description_requires_watch_results():
    with pytest.raises(StructuralDataMissing, match="twoColumnWatchNextResults"):
        extract.video_description({"contents": {}})


def test_listing_entries_read_shorts_grid():
    data = channel_data([("vid1", "First"), ("vid2", "Second")])
    assert extract.listing_entries(data) == [
        extract.ListingEntry(video_id="vid1", title="First"),
        extract.ListingEntry(video_id="vid2", title="Second"),
    ]
    assert extract.channel_icon(data) == "https://yt3.example/avatar.jpg"


def test_listing_without_grid_is_structural_error():
    data = channel_data([])
    data["contents"]["twoColumnBrowseResultsRenderer"]["tabs"].pop()
    with pytest.raises(StructuralDataMissing):
        extract.listing_entries(data)


def test_page_metadata_and_title():
    soup = extract.make_soup(watch_page("desc", author="Cool Channel"))
    meta = extract.page_metadata(soup)
    assert meta.author == "Cool Channel"
    assert meta.published == datetime(2024, 5, 1, 10, 0, tzinfo=timezone(timedelta(hours=-7)))
    assert extract.page_title(soup) == "A short"


def test_unavailable_marker():
    assert extract.is_unavailable('<script>{"IS_UNAVAILABLE_PAGE":true}</script>')
    assert not extract.is_unavailable(watch_page("desc"))
