"""Preview-deployment discovery and the headless-capture client."""

from __future__ import annotations

import base64
import binascii
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

import httpx

from config import RenderSettings, get_render_settings
from core import DiscussionComment
from utils.exceptions import CaptureError

logger = logging.getLogger(__name__)

# Accounts whose comments are trusted to carry preview deployment links.
DEPLOYMENT_BOTS = frozenset(
    {
        "vercel",
        "vercel[bot]",
        "netlify",
        "netlify[bot]",
        "cloudflare-pages[bot]",
        "cloudflare-workers-and-pages[bot]",
        "railway-app[bot]",
        "render[bot]",
        "fly-io[bot]",
    }
)

_HOST = r"https://[a-z0-9](?:[a-z0-9-]*[a-z0-9])?(?:\.[a-z0-9](?:[a-z0-9-]*[a-z0-9])?)*"

PREVIEW_URL_PATTERNS: Dict[str, re.Pattern] = {
    "vercel": re.compile(_HOST + r"\.vercel\.app", re.I),
    "netlify": re.compile(_HOST + r"\.netlify\.app", re.I),
    "cloudflare": re.compile(_HOST + r"\.pages\.dev", re.I),
    "railway": re.compile(_HOST + r"\.up\.railway\.app", re.I),
    "render": re.compile(_HOST + r"\.onrender\.com", re.I),
    "fly": re.compile(_HOST + r"\.fly\.dev", re.I),
}


@dataclass
class PreviewUrl:
    url: str
    platform: str
    comment_id: int


@dataclass
class CapturedImage:
    image: bytes
    route: str


def extract_preview_urls(comments: Iterable[DiscussionComment]) -> List[PreviewUrl]:
    """Preview URLs posted by deployment bots, in comment order, unique by URL."""
    found: List[PreviewUrl] = []
    seen = set()
    for comment in comments:
        if str(comment.author or "").lower() not in DEPLOYMENT_BOTS:
            continue
        hits = []
        for platform, pattern in PREVIEW_URL_PATTERNS.items():
            for match in pattern.finditer(comment.body or ""):
                hits.append((match.start(), match.group(0), platform))
        for _, url, platform in sorted(hits):
            key = url.lower()
            if key in seen:
                continue
            seen.add(key)
            found.append(PreviewUrl(url=url, platform=platform, comment_id=comment.id))
    return found


class HeadlessCaptureClient:
    """Client for the capture endpoint hosted next to the render server."""

    def __init__(
        self,
        *,
        settings: Optional[RenderSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings or get_render_settings()
        self.base_url = str(self.settings.server_url or "").strip().rstrip("/")
        self.secret = str(self.settings.webhook_secret or "").strip()
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.secret)

    async def capture(self, url: str, routes: Sequence[str] = ("/",)) -> List[CapturedImage]:
        if not self.configured:
            raise CaptureError("capture server not configured")

        payload: Dict[str, Any] = {
            "url": url,
            "routes": list(routes),
            "timeout": int(self.settings.capture_timeout_ms),
            "viewport": {
                "width": int(self.settings.viewport_width),
                "height": int(self.settings.viewport_height),
            },
        }
        headers = {"Authorization": f"Bearer {self.secret}", "Content-Type": "application/json"}
        # Browser timeout plus headroom for the HTTP round trip.
        timeout = httpx.Timeout(self.settings.capture_timeout_ms / 1000.0 + float(self.settings.timeout_s))
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                response = await client.post(f"{self.base_url}/capture", json=payload, headers=headers)
        except httpx.TimeoutException as exc:
            raise CaptureError("Capture timed out") from exc
        except httpx.RequestError as exc:
            raise CaptureError(f"Capture request failed: {exc}") from exc

        if response.status_code >= 400:
            raise CaptureError(f"Capture failed: {response.text[:200]}")

        try:
            rows = list((response.json() or {}).get("screenshots") or [])
            return [
                CapturedImage(
                    image=base64.b64decode(str(row["image"]), validate=True),
                    route=str(row.get("route") or "/"),
                )
                for row in rows
            ]
        except (ValueError, KeyError, TypeError, binascii.Error) as exc:
            raise CaptureError(f"Capture returned an invalid payload: {exc}") from exc
