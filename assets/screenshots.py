"""Screenshot discovery in PR discussion comments."""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional, Set, Tuple
from urllib.parse import urlparse

from core import DiscussionComment, ScreenshotAsset, ScreenshotSource

MAX_SCREENSHOTS = 6

# Exact (lower-cased) login -> provenance.
SCREENSHOT_BOTS: Dict[str, ScreenshotSource] = {
    "vercel": ScreenshotSource.VERCEL,
    "vercel[bot]": ScreenshotSource.VERCEL,
    "chromatic-com": ScreenshotSource.CHROMATIC,
    "chromatic-com[bot]": ScreenshotSource.CHROMATIC,
    "chromatic": ScreenshotSource.CHROMATIC,
    "percy-bot": ScreenshotSource.PERCY,
    "percy[bot]": ScreenshotSource.PERCY,
    "percy": ScreenshotSource.PERCY,
}

SOURCE_URL_PATTERNS: List[Tuple[re.Pattern, ScreenshotSource]] = [
    (re.compile(r"vercel\.com|vercel\.app|\.vercel\.sh", re.I), ScreenshotSource.VERCEL),
    (re.compile(r"chromatic\.com|chromaticqa\.com", re.I), ScreenshotSource.CHROMATIC),
    (re.compile(r"percy\.io", re.I), ScreenshotSource.PERCY),
]

EXCLUDE_PATTERNS: List[re.Pattern] = [
    re.compile(pattern, re.I)
    for pattern in (
        # avatars
        r"avatars\.githubusercontent\.com",
        r"github\.com/.*\.avatar",
        # badges
        r"shields\.io",
        r"badge\.fury\.io",
        r"badgen\.net",
        r"codecov\.io/.*/badge",
        r"coveralls\.io/repos/.*/badge",
        r"travis-ci\.(org|com)/.*\.svg",
        r"circleci\.com/.*\.svg",
        r"github\.com/.*/workflows/.*/badge",
        r"github\.com/.*/actions/workflows/.*\.svg",
        # icons
        r"\.ico$",
        r"favicon",
        r"icon[-_]?\d*\.(png|svg|jpg|gif)",
        r"emoji",
        r"twemoji",
        r"status-icon",
        r"status\.svg",
        r"indicator",
    )
]

SMALL_DIMENSION_HINTS = ("64x", "32x", "16x", "24x", "48x")

IMAGE_EXTENSION = re.compile(r"\.(png|jpg|jpeg|gif|webp|avif)(\?.*)?$", re.I)

KNOWN_IMAGE_HOSTS = (
    "user-images.githubusercontent.com",
    "private-user-images.githubusercontent.com",
    "imgur.com",
    "cloudinary.com",
    "imagekit.io",
)

MARKDOWN_IMAGE = re.compile(r"!\[([^\]]*)\]\(([^)]+)\)")
HTML_IMG_TAG = re.compile(r"<img\b[^>]*>", re.I)
HTML_SRC_ATTR = re.compile(r"""\bsrc\s*=\s*["']([^"']+)["']""", re.I)
HTML_ALT_ATTR = re.compile(r"""\balt\s*=\s*["']([^"']*)["']""", re.I)


def extract_images(body: str) -> List[Tuple[str, Optional[str]]]:
    """Return (url, alt) pairs from Markdown images and ``<img>`` tags, Markdown first."""
    content = str(body or "")
    images: List[Tuple[str, Optional[str]]] = []
    seen: Set[str] = set()

    for match in MARKDOWN_IMAGE.finditer(content):
        target = match.group(2).strip()
        # ![alt](url "title")
        url = target.split()[0] if target else ""
        if url and url not in seen:
            seen.add(url)
            images.append((url, match.group(1) or None))

    for tag in HTML_IMG_TAG.finditer(content):
        src = HTML_SRC_ATTR.search(tag.group(0))
        if not src:
            continue
        url = src.group(1).strip()
        if not url or url in seen:
            continue
        alt = HTML_ALT_ATTR.search(tag.group(0))
        seen.add(url)
        images.append((url, (alt.group(1) if alt else None) or None))

    return images


def is_valid_screenshot_url(url: str) -> bool:
    """Reject avatars, badges, icons and anything that does not look like an image."""
    parsed = urlparse(str(url or ""))
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        return False

    if any(pattern.search(url) for pattern in EXCLUDE_PATTERNS):
        return False
    if any(hint in url for hint in SMALL_DIMENSION_HINTS):
        return False

    host = (parsed.hostname or "").lower()
    is_known_host = any(known in host for known in KNOWN_IMAGE_HOSTS)
    return bool(IMAGE_EXTENSION.search(url)) or is_known_host


def identify_screenshot_source(author: str, url: str) -> ScreenshotSource:
    bot_source = SCREENSHOT_BOTS.get(str(author or "").lower())
    if bot_source is not None:
        return bot_source
    for pattern, source in SOURCE_URL_PATTERNS:
        if pattern.search(url):
            return source
    return ScreenshotSource.GENERIC


def parse_screenshots_from_comments(
    comments: Iterable[DiscussionComment],
    *,
    limit: int = MAX_SCREENSHOTS,
) -> List[ScreenshotAsset]:
    """Collect up to ``limit`` screenshots in first-seen order, unique by URL."""
    screenshots: List[ScreenshotAsset] = []
    seen: Set[str] = set()

    for comment in comments:
        for url, alt in extract_images(comment.body):
            if url in seen or not is_valid_screenshot_url(url):
                continue
            seen.add(url)
            screenshots.append(
                ScreenshotAsset(
                    url=url,
                    alt_text=alt,
                    source=identify_screenshot_source(comment.author, url),
                    comment_id=comment.id,
                    comment_author=comment.author or None,
                    display_order=len(screenshots),
                )
            )
            if len(screenshots) >= limit:
                return screenshots

    return screenshots
