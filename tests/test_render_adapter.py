from __future__ import annotations

import json

import httpx
import pytest

from config import RenderSettings
from core import FileDiff, ScreenshotAsset, ScreenshotSource
from render import RemoteRenderAdapter, RenderRequest, RenderScreenRecording
from utils.exceptions import RenderDispatchError


def _request(**overrides) -> RenderRequest:
    values = dict(
        video_id="vid_1",
        title="Checkout rebuilt",
        description="Faster checkout",
        author="alice",
        author_avatar="https://avatars.example.com/alice",
        files_changed=3,
        additions=40,
        deletions=2,
        files=[FileDiff(filename="src/a.py", status="modified", additions=4, deletions=1, patch="+a")],
        repo="acme/widgets",
        summary="Summary",
        script="Script",
        audio_url="http://media.test/audio/vid_1.mp3",
        audio_duration_ms=65000,
        callback_url="http://app.test/api/webhook/render-complete",
    )
    values.update(overrides)
    return RenderRequest(**values)


def test_payload_omits_optional_sections() -> None:
    payload = _request().to_payload()
    assert payload["videoId"] == "vid_1"
    assert payload["audioDurationMs"] == 65000
    assert payload["callbackUrl"] == "http://app.test/api/webhook/render-complete"
    pr_data = payload["prData"]
    assert pr_data["repo"] == "acme/widgets"
    assert pr_data["prCount"] == 1
    assert pr_data["files"][0]["filename"] == "src/a.py"
    assert "prTitles" not in pr_data
    assert "screenshots" not in pr_data
    assert "screenRecording" not in pr_data


def test_payload_includes_multi_item_extras() -> None:
    payload = _request(
        pr_count=2,
        pr_titles=["Cart", "Payment"],
        screenshots=[ScreenshotAsset(url="https://cdn.example.com/a.png", source=ScreenshotSource.VERCEL, display_order=3)],
        screen_recording=RenderScreenRecording(url="http://media.test/recordings/vid_1.mp4", duration_ms=9000),
    ).to_payload()
    pr_data = payload["prData"]
    assert pr_data["prTitles"] == ["Cart", "Payment"]
    assert pr_data["screenshots"] == [
        {"url": "https://cdn.example.com/a.png", "alt_text": None, "source": "vercel", "display_order": 0}
    ]
    assert pr_data["screenRecording"] == {"url": "http://media.test/recordings/vid_1.mp4", "durationMs": 9000}


@pytest.mark.asyncio
async def test_dispatch_posts_with_bearer_secret() -> None:
    seen: list = []

    def _handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(202, json={"ok": True})

    adapter = RemoteRenderAdapter(
        settings=RenderSettings(server_url="https://render.example.com", webhook_secret="s3cret"),
        transport=httpx.MockTransport(_handler),
    )
    await adapter.dispatch(_request())

    assert str(seen[0].url) == "https://render.example.com/render"
    assert seen[0].headers["Authorization"] == "Bearer s3cret"
    assert json.loads(seen[0].content)["videoId"] == "vid_1"


@pytest.mark.asyncio
async def test_dispatch_failure_raises() -> None:
    adapter = RemoteRenderAdapter(
        settings=RenderSettings(server_url="https://render.example.com", webhook_secret="s3cret"),
        transport=httpx.MockTransport(lambda request: httpx.Response(500, text="out of workers")),
    )
    with pytest.raises(RenderDispatchError) as exc_info:
        await adapter.dispatch(_request())
    assert str(exc_info.value) == "Failed to start render: out of workers"


def test_unconfigured_adapter_reports_not_configured() -> None:
    assert not RemoteRenderAdapter(settings=RenderSettings(server_url=None)).configured
