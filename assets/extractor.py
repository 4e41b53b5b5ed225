"""Asset extraction stage: comment screenshots first, headless capture as fallback."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from core import DiscussionComment, ScreenshotAsset, ScreenshotSource
from storage import BaseMediaStore
from utils.exceptions import CaptureError, MediaStorageError

from .preview_capture import HeadlessCaptureClient, extract_preview_urls
from .screenshots import MAX_SCREENSHOTS, parse_screenshots_from_comments

logger = logging.getLogger(__name__)


class AssetExtractor:
    """
    Collects up to six screenshots for a job.

    The capture fallback only runs when the comments yield nothing and a
    deployment bot posted a preview link. Capture and upload problems are
    logged; they never fail the job.
    """

    def __init__(
        self,
        media_store: BaseMediaStore,
        capture_client: Optional[HeadlessCaptureClient] = None,
    ) -> None:
        self.media_store = media_store
        self.capture_client = capture_client

    async def extract(self, job_id: str, comments: Sequence[DiscussionComment]) -> List[ScreenshotAsset]:
        screenshots = parse_screenshots_from_comments(comments)
        if screenshots:
            logger.info("screenshots_found job_id=%s count=%s", job_id, len(screenshots))
            return screenshots
        return await self._capture_fallback(job_id, comments)

    async def _capture_fallback(self, job_id: str, comments: Sequence[DiscussionComment]) -> List[ScreenshotAsset]:
        client = self.capture_client
        if client is None or not client.configured:
            return []

        previews = extract_preview_urls(comments)
        if not previews:
            return []

        target = previews[0]
        logger.info("capture_fallback job_id=%s url=%s platform=%s", job_id, target.url, target.platform)
        try:
            captured = await client.capture(target.url, routes=["/"])
        except CaptureError as exc:
            logger.warning("capture_failed job_id=%s url=%s error=%s", job_id, target.url, exc)
            return []

        assets: List[ScreenshotAsset] = []
        for idx, item in enumerate(captured[:MAX_SCREENSHOTS]):
            path = f"screenshots/{job_id}-{idx}.png"
            try:
                url = self.media_store.put(path, item.image, content_type="image/png")
            except MediaStorageError as exc:
                logger.warning("capture_upload_failed job_id=%s path=%s error=%s", job_id, path, exc)
                continue
            assets.append(
                ScreenshotAsset(
                    url=url,
                    alt_text=f"Auto-captured: {item.route}",
                    source=ScreenshotSource.AUTO_CAPTURE,
                    comment_id=0,
                    comment_author=None,
                    display_order=len(assets),
                )
            )
        logger.info("capture_done job_id=%s count=%s", job_id, len(assets))
        return assets
