"""Description reconstruction tests."""

from __future__ import annotations

import re

from shortsfeed.engine.reconstruct import apply_ranges, reconstruct
from shortsfeed.engine.types import AbsoluteUrl, Linked, MatchedRange, RedirectWrapper, Unlinked

from .conftest import BASE_URL, make_annotation

_ANCHOR_RE = re.compile(r'<a href="[^"]*">(.*?)</a>')


def _strip_anchors(text: str) -> str:
    return _ANCHOR_RE.sub(r"\1", text)


def test_empty_annotation_list_leaves_text_untouched(engine_config):
    text = "Nothing to link here.\nSecond line"
    result = reconstruct(text, [], BASE_URL, engine_config)
    assert result == Unlinked(text)
    assert not result.linked


def test_channel_and_hashtag_are_linked(engine_config):
    text = "Check this out: CoolChannel and #fun"
    annotations = [
        make_annotation(17, 11, "/c/CoolChannel"),
        make_annotation(33, 4, "/hashtag/fun", hashtag=True),
    ]

    result = reconstruct(text, annotations, BASE_URL, engine_config)

    assert result == Linked(
        'Check this out: <a href="https://site.example/c/CoolChannel">CoolChannel</a> and '
        '<a href="https://site.example/hashtag/fun">#fun</a>'
    )
    assert result.linked
    assert _strip_anchors(result.text) == text


def test_emoji_drift_is_carried_to_later_links(engine_config):
    text = "\U0001F600\U0001F600 Hello @Someone and #tag"
    annotations = [
        make_annotation(11, 8, "/@Someone"),
        make_annotation(24, 4, "/hashtag/tag", hashtag=True),
    ]

    result = reconstruct(text, annotations, BASE_URL, engine_config)

    assert isinstance(result, Linked)
    assert result.text.count("<a href=") == 2
    assert '<a href="https://site.example/@Someone">@Someone</a>' in result.text
    assert '<a href="https://site.example/hashtag/tag">#tag</a>' in result.text
    assert _strip_anchors(result.text) == text


def test_one_unmatchable_link_discards_all_links(engine_config):
    text = "CoolChannel xyzlongwordhere"
    annotations = [
        make_annotation(0, 11, "/c/CoolChannel"),
        make_annotation(14, 3, "/x"),
    ]

    result = reconstruct(text, annotations, BASE_URL, engine_config)

    assert result == Unlinked(text)


def test_annotation_without_target_discards_all_links(engine_config):
    text = "Check this out: CoolChannel and #fun"
    annotations = [
        make_annotation(17, 11, "/c/CoolChannel"),
        make_annotation(33, 4, hashtag=True),
    ]

    assert reconstruct(text, annotations, BASE_URL, engine_config) == Unlinked(text)


def test_redirect_and_absolute_links(engine_config):
    text = "Shop: https://shop.example/item (more at music.example)"
    annotations = [
        make_annotation(6, 25, link=RedirectWrapper("https%3A%2F%2Fshop.example%2Fitem")),
        make_annotation(41, 13, link=AbsoluteUrl("https://music.example/")),
    ]

    result = reconstruct(text, annotations, BASE_URL, engine_config)

    assert result == Linked(
        'Shop: <a href="https://shop.example/item">https://shop.example/item</a> '
        '(more at <a href="https://music.example/">music.example</a>)'
    )


def test_base_url_defaults_to_config(engine_config):
    text = "by @Someone"
    result = reconstruct(text, [make_annotation(3, 8, "/@Someone")], config=engine_config)
    assert result == Linked('by <a href="https://www.youtube.com/@Someone">@Someone</a>')


def test_line_breaks_become_br_tags(engine_config):
    text = "Follow CoolChannel\n\nthanks"
    result = reconstruct(text, [make_annotation(7, 12, "/c/CoolChannel")], BASE_URL, engine_config)

    assert result.text == 'Follow <a href="https://site.example/c/CoolChannel">CoolChannel</a>\n\nthanks'
    assert result.as_html() == (
        'Follow <a href="https://site.example/c/CoolChannel">CoolChannel</a><br><br>thanks'
    )
    assert Unlinked("a\nb").as_html() == "a<br>b"


def test_apply_ranges_trims_renderer_artifacts(boundaries):
    text = "See • Video Name! and x / @Chan"
    ranges = [
        MatchedRange(start=4, length=12, url="https://site.example/watch?v=1"),
        MatchedRange(start=24, length=7, url="https://site.example/@Chan"),
    ]

    linked = apply_ranges(text, ranges, boundaries)

    assert linked == (
        'See <a href="https://site.example/watch?v=1">Video Name</a>! and x '
        '<a href="https://site.example/@Chan">@Chan</a>'
    )


def test_apply_ranges_keeps_earlier_offsets_valid(boundaries):
    text = "aa bb cc"
    ranges = [
        MatchedRange(start=0, length=2, url="/1"),
        MatchedRange(start=3, length=2, url="/2"),
        MatchedRange(start=6, length=2, url="/3"),
    ]

    linked = apply_ranges(text, ranges, boundaries)

    assert linked == '<a href="/1">aa</a> <a href="/2">bb</a> <a href="/3">cc</a>'


def test_adjacent_and_dashed_hashtags_are_linked(engine_config):
    text = "go #a#b and #c-d"
    annotations = [
        make_annotation(3, 2, "/hashtag/a", hashtag=True),
        make_annotation(5, 2, "/hashtag/b", hashtag=True),
        make_annotation(12, 2, "/hashtag/c", hashtag=True),
    ]

    result = reconstruct(text, annotations, BASE_URL, engine_config)

    assert result == Linked(
        'go <a href="https://site.example/hashtag/a">#a</a><a href="https://site.example/hashtag/b">#b</a> and '
        '<a href="https://site.example/hashtag/c">#c</a>-d'
    )


def test_description_markup_is_passed_through(boundaries):
    text = "<b>bold</b> Chan"
    ranges = [MatchedRange(start=12, length=4, url='/c?a=1&b="2"')]

    linked = apply_ranges(text, ranges, boundaries)

    assert linked == '<b>bold</b> <a href="/c?a=1&amp;b=&quot;2&quot;">Chan</a>'
    assert _strip_anchors(linked) == text
