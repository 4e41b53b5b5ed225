"""HTTP adapter for the remote render server."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from config import RenderSettings, get_render_settings
from utils.exceptions import RenderDispatchError

from .base import BaseRenderAdapter, RenderRequest

logger = logging.getLogger(__name__)


class RemoteRenderAdapter(BaseRenderAdapter):
    """Posts render jobs to ``{RENDER_SERVER_URL}/render`` with the shared bearer secret."""

    provider = "remote"

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
        return bool(self.base_url)

    async def dispatch(self, request: RenderRequest) -> None:
        if not self.configured:
            raise RenderDispatchError("Render server is not configured")

        headers = {"Content-Type": "application/json"}
        if self.secret:
            headers["Authorization"] = f"Bearer {self.secret}"

        try:
            async with httpx.AsyncClient(timeout=self.settings.timeout_s, transport=self._transport) as client:
                response = await client.post(
                    f"{self.base_url}/render",
                    json=request.to_payload(),
                    headers=headers,
                )
        except httpx.TimeoutException as exc:
            raise RenderDispatchError("Failed to start render: request timed out") from exc
        except httpx.RequestError as exc:
            raise RenderDispatchError(f"Failed to start render: {exc}") from exc

        if response.status_code >= 400:
            raise RenderDispatchError(f"Failed to start render: {response.text[:500]}")

        logger.info("render_dispatched video_id=%s status=%s", request.video_id, response.status_code)
