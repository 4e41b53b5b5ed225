"""Outbound result webhooks for jobs created through the public API."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx
from tenacity import AsyncRetrying, RetryError, retry_if_exception_type, stop_after_attempt, wait_exponential

from core import TERMINAL_STATUSES, VideoJob

logger = logging.getLogger(__name__)


class WebhookDeliveryError(Exception):
    pass


def build_result_payload(job: VideoJob, share_url: str) -> Dict[str, Any]:
    return {
        "video_id": job.id,
        "status": job.status.value,
        "share_url": share_url,
        "video_url": job.video_url,
        "error": job.error_message,
    }


class ResultNotifier:
    """
    POSTs the terminal job result to the caller's webhook.

    Delivery is retried with exponential backoff; a final failure is logged and
    never touches the job.
    """

    def __init__(
        self,
        *,
        public_url: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        max_attempts: int = 3,
        backoff_min_s: float = 1.0,
        backoff_max_s: float = 10.0,
        timeout_s: float = 10.0,
    ) -> None:
        self.public_url = public_url.rstrip("/")
        self._transport = transport
        self.max_attempts = max(1, int(max_attempts))
        self.backoff_min_s = backoff_min_s
        self.backoff_max_s = backoff_max_s
        self.timeout_s = timeout_s

    def share_url(self, job: VideoJob) -> str:
        return f"{self.public_url}/v/{job.share_id}"

    async def _post(self, url: str, payload: Dict[str, Any]) -> None:
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport) as client:
                response = await client.post(url, json=payload)
        except httpx.RequestError as exc:
            raise WebhookDeliveryError(f"request failed: {exc}") from exc
        if response.status_code >= 400:
            raise WebhookDeliveryError(f"http {response.status_code}")

    async def notify(self, job: VideoJob) -> bool:
        """Deliver the result of a terminal job. Returns True on success."""
        if not job.result_webhook_url or job.status not in TERMINAL_STATUSES:
            return False

        payload = build_result_payload(job, self.share_url(job))
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff_min_s, min=self.backoff_min_s, max=self.backoff_max_s),
            retry=retry_if_exception_type(WebhookDeliveryError),
        )
        try:
            async for attempt in retrying:
                with attempt:
                    await self._post(job.result_webhook_url, payload)
        except RetryError as exc:
            logger.warning(
                "result_webhook_failed job_id=%s url=%s attempts=%s error=%s",
                job.id,
                job.result_webhook_url,
                self.max_attempts,
                exc.last_attempt.exception(),
            )
            return False

        logger.info("result_webhook_sent job_id=%s status=%s", job.id, job.status.value)
        return True
