"""Render adapter abstractions."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from core import FileDiff, ScreenshotAsset


class RenderScreenRecording(BaseModel):
    url: str
    duration_ms: int


class RenderRequest(BaseModel):
    """Everything the compositor needs to render one job."""

    video_id: str
    title: str
    description: str = ""
    author: str = ""
    author_avatar: str = ""
    files_changed: int = 0
    additions: int = 0
    deletions: int = 0
    files: List[FileDiff] = Field(default_factory=list)
    repo: str
    pr_count: int = 1
    pr_titles: Optional[List[str]] = None
    screenshots: List[ScreenshotAsset] = Field(default_factory=list)
    screen_recording: Optional[RenderScreenRecording] = None
    summary: str
    script: str
    audio_url: str
    audio_duration_ms: int
    callback_url: str

    def to_payload(self) -> Dict[str, Any]:
        """Wire format expected by the render server."""
        pr_data: Dict[str, Any] = {
            "title": self.title,
            "description": self.description,
            "author": self.author,
            "authorAvatar": self.author_avatar,
            "filesChanged": self.files_changed,
            "additions": self.additions,
            "deletions": self.deletions,
            "files": [
                {
                    "filename": item.filename,
                    "status": item.status,
                    "additions": item.additions,
                    "deletions": item.deletions,
                    "patch": item.patch,
                }
                for item in self.files
            ],
            "repo": self.repo,
            "prCount": self.pr_count,
        }
        if self.pr_titles:
            pr_data["prTitles"] = list(self.pr_titles)
        if self.screenshots:
            pr_data["screenshots"] = [
                {
                    "url": shot.url,
                    "alt_text": shot.alt_text,
                    "source": shot.source.value,
                    "display_order": idx,
                }
                for idx, shot in enumerate(self.screenshots)
            ]
        if self.screen_recording is not None:
            pr_data["screenRecording"] = {
                "url": self.screen_recording.url,
                "durationMs": self.screen_recording.duration_ms,
            }
        return {
            "videoId": self.video_id,
            "prData": pr_data,
            "aiSummary": self.summary,
            "aiScript": self.script,
            "audioUrl": self.audio_url,
            "audioDurationMs": self.audio_duration_ms,
            "callbackUrl": self.callback_url,
        }


class BaseRenderAdapter:
    """Base adapter that can be replaced by the remote renderer or mocks."""

    provider = "base"

    @property
    def configured(self) -> bool:
        return False

    async def dispatch(self, request: RenderRequest) -> None:
        """Hand a job to the renderer. Completion arrives later through the webhook."""
        raise NotImplementedError
