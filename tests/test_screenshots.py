from __future__ import annotations

from core import DiscussionComment, ScreenshotSource
from assets import (
    MAX_SCREENSHOTS,
    extract_images,
    identify_screenshot_source,
    is_valid_screenshot_url,
    parse_screenshots_from_comments,
)


def _comment(cid: int, body: str, author: str = "dev") -> DiscussionComment:
    return DiscussionComment(id=cid, body=body, author=author)


def test_extract_images_reads_markdown_then_html() -> None:
    body = (
        '<img width="600" src="https://cdn.example.com/b.png" alt="after">\n'
        "![before](https://cdn.example.com/a.png)\n"
        "<img alt='flipped' src='https://cdn.example.com/c.jpg' />"
    )
    assert extract_images(body) == [
        ("https://cdn.example.com/a.png", "before"),
        ("https://cdn.example.com/b.png", "after"),
        ("https://cdn.example.com/c.jpg", "flipped"),
    ]


def test_extract_images_drops_markdown_title_and_dedupes() -> None:
    body = (
        '![shot](https://cdn.example.com/a.png "Main screen")\n'
        '<img src="https://cdn.example.com/a.png">'
    )
    assert extract_images(body) == [("https://cdn.example.com/a.png", "shot")]


def test_extract_images_empty_alt_is_none() -> None:
    assert extract_images("![](https://cdn.example.com/a.png)") == [("https://cdn.example.com/a.png", None)]


def test_is_valid_screenshot_url_filters_noise() -> None:
    assert is_valid_screenshot_url("https://cdn.example.com/screens/home.png")
    assert is_valid_screenshot_url("https://user-images.githubusercontent.com/1/abc")
    assert not is_valid_screenshot_url("https://avatars.githubusercontent.com/u/1?v=4")
    assert not is_valid_screenshot_url("https://img.shields.io/badge/build-passing-green.png")
    assert not is_valid_screenshot_url("https://cdn.example.com/favicon.png")
    assert not is_valid_screenshot_url("https://cdn.example.com/thumb-32x32.png")
    assert not is_valid_screenshot_url("https://cdn.example.com/page.html")
    assert not is_valid_screenshot_url("ftp://cdn.example.com/a.png")


def test_identify_screenshot_source_prefers_bot_author() -> None:
    assert identify_screenshot_source("vercel[bot]", "https://cdn.example.com/a.png") == ScreenshotSource.VERCEL
    assert identify_screenshot_source("Percy[bot]", "https://cdn.example.com/a.png") == ScreenshotSource.PERCY
    assert identify_screenshot_source("dev", "https://www.chromatic.com/build/a.png") == ScreenshotSource.CHROMATIC
    assert identify_screenshot_source("dev", "https://cdn.example.com/a.png") == ScreenshotSource.GENERIC


def test_parse_screenshots_keeps_comment_provenance() -> None:
    comments = [
        _comment(11, "Nothing to see"),
        _comment(12, "![home](https://cdn.example.com/home.png)", author="alice"),
        _comment(13, "again ![home](https://cdn.example.com/home.png) ![menu](https://cdn.example.com/menu.png)"),
    ]
    shots = parse_screenshots_from_comments(comments)
    assert [shot.url for shot in shots] == [
        "https://cdn.example.com/home.png",
        "https://cdn.example.com/menu.png",
    ]
    assert shots[0].comment_id == 12
    assert shots[0].comment_author == "alice"
    assert shots[1].comment_id == 13
    assert [shot.display_order for shot in shots] == [0, 1]


def test_parse_screenshots_caps_at_limit() -> None:
    body = "\n".join(f"![s{i}](https://cdn.example.com/s{i}.png)" for i in range(10))
    shots = parse_screenshots_from_comments([_comment(1, body)])
    assert len(shots) == MAX_SCREENSHOTS
    assert shots[-1].url == f"https://cdn.example.com/s{MAX_SCREENSHOTS - 1}.png"
