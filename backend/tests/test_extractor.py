from folio.models import Platform
from folio.services.extractor import (
    VideoBox,
    extract_content,
    parse_count,
    pick_most_visible,
    strip_title_suffix,
    visibility,
)


def test_parse_count_handles_suffixes_and_separators():
    assert parse_count("1.2M views") == 1_200_000
    assert parse_count("15,300") == 15_300
    assert parse_count("3K") == 3_000
    assert parse_count("2.5b") == 2_500_000_000
    assert parse_count("") is None
    assert parse_count("no digits") is None


def test_visibility_fraction():
    assert visibility(VideoBox(top=0, height=400), 800) == 1.0
    assert visibility(VideoBox(top=-200, height=400), 800) == 0.5
    assert visibility(VideoBox(top=900, height=400), 800) == 0.0


def test_pick_most_visible_prefers_centered_video():
    boxes = [
        VideoBox(top=-300, height=600, url="a"),
        VideoBox(top=100, height=600, url="b"),
        VideoBox(top=650, height=600, url="c"),
    ]

    assert pick_most_visible(boxes, 800).url == "b"


def test_pick_most_visible_skips_small_and_hidden_videos():
    boxes = [
        VideoBox(top=350, height=80, url="tiny"),
        VideoBox(top=700, height=400, url="mostly-below"),
    ]

    assert pick_most_visible(boxes, 800) is None


def test_playing_bonus_breaks_near_ties():
    boxes = [
        VideoBox(top=100, height=600, url="paused"),
        VideoBox(top=100, height=600, url="playing", playing=True),
    ]

    assert pick_most_visible(boxes, 800).url == "playing"


def test_strip_title_suffix():
    assert strip_title_suffix("Great video - YouTube") == "Great video"
    assert strip_title_suffix("Set | Mixcloud") == "Set"


def test_extract_youtube_page():
    html = """<html><head><title>Fallback - YouTube</title></head>
    <body><h1 class="ytd-watch-metadata">Ten Python tricks</h1>
    <span class="ytd-video-view-count-renderer">1,234 views</span></body></html>"""

    content = extract_content("https://www.youtube.com/watch?v=dQw4w9WgXcQ", html)

    assert content.title == "Ten Python tricks"
    assert content.platform == Platform.youtube_long
    assert content.video_id == "dQw4w9WgXcQ"
    assert content.views == 1234
    assert content.thumbnail.endswith("/dQw4w9WgXcQ/maxresdefault.jpg")


def test_extract_tiktok_feed_uses_most_visible_video():
    boxes = [
        VideoBox(top=-500, height=700, url="https://www.tiktok.com/@a/video/1", title="old"),
        VideoBox(
            top=50,
            height=700,
            url="https://www.tiktok.com/@b/video/222",
            title="current clip",
            username="b",
            views="10K",
            likes="1K",
            playing=True,
        ),
    ]

    content = extract_content("https://www.tiktok.com/foryou", "<html></html>", videos=boxes, viewport_height=800)

    assert content.title == "@b: current clip"
    assert content.url == "https://www.tiktok.com/@b/video/222"
    assert content.video_id == "222"
    assert content.views == 10_000
    assert content.engagement == 10.0


def test_extract_generic_page_falls_back_to_og_title():
    html = '<html><head><meta property="og:title" content="Deep House Mix | Mixcloud"></head></html>'

    content = extract_content("https://www.mixcloud.com/dj/deep-house/", html)

    assert content.title == "Deep House Mix"
    assert content.platform == Platform.mixcloud


def test_extract_unsupported_page_returns_none():
    assert extract_content("https://example.com/page", "<html></html>") is None
