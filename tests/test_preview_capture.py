from __future__ import annotations

import base64
import json

import httpx
import pytest

from assets import AssetExtractor, HeadlessCaptureClient, extract_preview_urls
from config import RenderSettings
from core import DiscussionComment, ScreenshotSource
from storage import LocalMediaStore
from utils.exceptions import CaptureError

PNG = b"\x89PNG\r\n\x1a\nfake"


def _settings() -> RenderSettings:
    return RenderSettings(server_url="https://render.example.com/", webhook_secret="s3cret", timeout_s=5)


def _capture_transport(seen: list, status: int = 200, images=None) -> httpx.MockTransport:
    rows = images if images is not None else [{"route": "/", "image": base64.b64encode(PNG).decode()}]

    def _handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if status >= 400:
            return httpx.Response(status, text="browser crashed")
        return httpx.Response(200, json={"screenshots": rows})

    return httpx.MockTransport(_handler)


def test_extract_preview_urls_only_trusts_deployment_bots() -> None:
    comments = [
        DiscussionComment(id=1, author="mallory", body="see https://evil.vercel.app"),
        DiscussionComment(
            id=2,
            author="vercel[bot]",
            body="Preview: https://widgets-git-feat-acme.vercel.app and https://widgets-git-feat-acme.vercel.app",
        ),
        DiscussionComment(id=3, author="netlify[bot]", body="Deploy preview https://deploy-preview-4--widgets.netlify.app"),
    ]
    previews = extract_preview_urls(comments)
    assert [(p.url, p.platform, p.comment_id) for p in previews] == [
        ("https://widgets-git-feat-acme.vercel.app", "vercel", 2),
        ("https://deploy-preview-4--widgets.netlify.app", "netlify", 3),
    ]


@pytest.mark.asyncio
async def test_capture_posts_authorized_request() -> None:
    seen: list = []
    client = HeadlessCaptureClient(settings=_settings(), transport=_capture_transport(seen))
    images = await client.capture("https://widgets.vercel.app", routes=["/"])

    assert len(images) == 1
    assert images[0].image == PNG
    assert images[0].route == "/"
    request = seen[0]
    assert str(request.url) == "https://render.example.com/capture"
    assert request.headers["Authorization"] == "Bearer s3cret"
    body = json.loads(request.content)
    assert body["url"] == "https://widgets.vercel.app"
    assert body["routes"] == ["/"]
    assert body["viewport"] == {"width": 1920, "height": 1080}


@pytest.mark.asyncio
async def test_capture_raises_on_server_error() -> None:
    client = HeadlessCaptureClient(settings=_settings(), transport=_capture_transport([], status=500))
    with pytest.raises(CaptureError):
        await client.capture("https://widgets.vercel.app")


@pytest.mark.asyncio
async def test_capture_requires_configuration() -> None:
    client = HeadlessCaptureClient(settings=RenderSettings(server_url=None, webhook_secret=None))
    assert not client.configured
    with pytest.raises(CaptureError):
        await client.capture("https://widgets.vercel.app")


@pytest.mark.asyncio
async def test_extractor_prefers_comment_screenshots(tmp_path) -> None:
    seen: list = []
    extractor = AssetExtractor(
        LocalMediaStore(root=str(tmp_path), public_base_url="http://media.test"),
        capture_client=HeadlessCaptureClient(settings=_settings(), transport=_capture_transport(seen)),
    )
    comments = [
        DiscussionComment(id=5, author="dev", body="![ui](https://cdn.example.com/ui.png)"),
        DiscussionComment(id=6, author="vercel[bot]", body="https://widgets.vercel.app"),
    ]
    shots = await extractor.extract("vid_1", comments)
    assert [shot.url for shot in shots] == ["https://cdn.example.com/ui.png"]
    assert seen == []


@pytest.mark.asyncio
async def test_extractor_falls_back_to_capture(tmp_path) -> None:
    seen: list = []
    store = LocalMediaStore(root=str(tmp_path), public_base_url="http://media.test")
    extractor = AssetExtractor(
        store,
        capture_client=HeadlessCaptureClient(settings=_settings(), transport=_capture_transport(seen)),
    )
    comments = [DiscussionComment(id=6, author="vercel[bot]", body="Ready: https://widgets.vercel.app")]

    shots = await extractor.extract("vid_2", comments)

    assert len(seen) == 1
    assert len(shots) == 1
    assert shots[0].source == ScreenshotSource.AUTO_CAPTURE
    assert shots[0].alt_text == "Auto-captured: /"
    assert shots[0].comment_id == 0
    assert shots[0].comment_author is None
    assert shots[0].url == "http://media.test/screenshots/vid_2-0.png"
    assert (tmp_path / "screenshots" / "vid_2-0.png").read_bytes() == PNG


@pytest.mark.asyncio
async def test_extractor_swallows_capture_failure(tmp_path) -> None:
    extractor = AssetExtractor(
        LocalMediaStore(root=str(tmp_path), public_base_url="http://media.test"),
        capture_client=HeadlessCaptureClient(settings=_settings(), transport=_capture_transport([], status=502)),
    )
    comments = [DiscussionComment(id=6, author="vercel[bot]", body="https://widgets.vercel.app")]
    assert await extractor.extract("vid_3", comments) == []


@pytest.mark.asyncio
async def test_extractor_without_preview_returns_empty(tmp_path) -> None:
    seen: list = []
    extractor = AssetExtractor(
        LocalMediaStore(root=str(tmp_path), public_base_url="http://media.test"),
        capture_client=HeadlessCaptureClient(settings=_settings(), transport=_capture_transport(seen)),
    )
    assert await extractor.extract("vid_4", [DiscussionComment(id=1, author="dev", body="LGTM")]) == []
    assert seen == []
