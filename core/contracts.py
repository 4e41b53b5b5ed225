"""Canonical data contracts for the change-request video pipeline."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobStatus(str, Enum):
    """Lifecycle states of a video job."""

    PENDING = "pending"
    ANALYZING = "analyzing"
    GENERATING_AUDIO = "generating_audio"
    RENDERING = "rendering"
    COMPLETE = "complete"
    FAILED = "failed"


TERMINAL_STATUSES: FrozenSet[JobStatus] = frozenset({JobStatus.COMPLETE, JobStatus.FAILED})
RETRYABLE_STATUSES: FrozenSet[JobStatus] = frozenset({JobStatus.FAILED, JobStatus.RENDERING})

# Forward edges only; retry back to pending is checked separately.
ALLOWED_TRANSITIONS: Dict[JobStatus, FrozenSet[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.ANALYZING, JobStatus.FAILED}),
    JobStatus.ANALYZING: frozenset({JobStatus.GENERATING_AUDIO, JobStatus.FAILED}),
    JobStatus.GENERATING_AUDIO: frozenset({JobStatus.RENDERING, JobStatus.FAILED}),
    JobStatus.RENDERING: frozenset({JobStatus.COMPLETE, JobStatus.FAILED}),
    JobStatus.COMPLETE: frozenset(),
    JobStatus.FAILED: frozenset(),
}


class ChangeType(str, Enum):
    """Narrative classification of a change."""

    FEATURE = "feature"
    BUGFIX = "bugfix"
    REFACTOR = "refactor"
    DOCS = "docs"
    OTHER = "other"


class ScreenshotSource(str, Enum):
    """Provenance tag for a screenshot asset."""

    VERCEL = "vercel"
    CHROMATIC = "chromatic"
    PERCY = "percy"
    GENERIC = "generic"
    AUTO_CAPTURE = "auto-capture"


class JobOrigin(str, Enum):
    DASHBOARD = "dashboard"
    API = "api"


class ResolvedReference(BaseModel):
    """A parsed change-request URL with its display position."""

    owner: str
    repo: str
    number: int
    url: str
    display_order: int = 0

    @property
    def repo_full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


class FileDiff(BaseModel):
    filename: str
    status: str = "modified"
    additions: int = 0
    deletions: int = 0
    patch: Optional[str] = None
    patch_lines: int = 0


class CommitInfo(BaseModel):
    sha: str
    message: str
    author: str = "Unknown"


class DiscussionComment(BaseModel):
    id: int
    body: str = ""
    author: str = ""
    created_at: Optional[str] = None


class ChangeRequestData(BaseModel):
    """Aggregated metadata for one change request."""

    reference: ResolvedReference
    title: str
    description: str = ""
    author: str = ""
    author_avatar: str = ""
    files_changed: int = 0
    additions: int = 0
    deletions: int = 0
    files: List[FileDiff] = Field(default_factory=list)
    commits: List[CommitInfo] = Field(default_factory=list)
    comments: List[DiscussionComment] = Field(default_factory=list)

    @property
    def number(self) -> int:
        return self.reference.number


class ChangeRequestRef(BaseModel):
    """A change request linked to a job, with cached per-item metadata."""

    job_id: str
    owner: str
    repo: str
    number: int
    url: str
    display_order: int
    title: Optional[str] = None
    description: Optional[str] = None
    author: Optional[str] = None
    files_changed: int = 0
    additions: int = 0
    deletions: int = 0


class ScreenshotAsset(BaseModel):
    url: str
    alt_text: Optional[str] = None
    source: ScreenshotSource = ScreenshotSource.GENERIC
    comment_id: int = 0
    comment_author: Optional[str] = None
    display_order: int = 0


class ScreenRecordingAsset(BaseModel):
    storage_path: str
    url: str
    duration_ms: int
    size_bytes: int
    content_type: str = "video/mp4"


class Narrative(BaseModel):
    """Structured output of the narrative synthesizer."""

    summary: str
    script: str
    change_type: ChangeType
    unified_title: Optional[str] = None

    @field_validator("summary", "script", mode="before")
    @classmethod
    def _non_empty_text(cls, value: Any) -> str:
        text = str(value or "").strip()
        if not text:
            raise ValueError("value is required")
        return text


class VoiceResult(BaseModel):
    audio: bytes
    duration_ms: int
    duration_source: str = "metadata"
    content_type: str = "audio/mpeg"


class VideoJob(BaseModel):
    """A video generation job and everything persisted about it."""

    id: str
    owner_id: str
    origin: JobOrigin = JobOrigin.DASHBOARD
    status: JobStatus = JobStatus.PENDING
    error_message: Optional[str] = None

    repo_owner: str
    repo_name: str
    pr_number: int
    pr_url: str
    pr_title: Optional[str] = None
    pr_description: Optional[str] = None
    pr_author: Optional[str] = None
    pr_author_avatar: Optional[str] = None

    files_changed: int = 0
    additions: int = 0
    deletions: int = 0
    total_files_changed: int = 0
    total_additions: int = 0
    total_deletions: int = 0

    summary: Optional[str] = None
    script: Optional[str] = None
    change_type: Optional[ChangeType] = None

    audio_url: Optional[str] = None
    audio_duration_ms: Optional[int] = None
    video_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    duration_seconds: Optional[float] = None
    screen_recording: Optional[ScreenRecordingAsset] = None

    pull_requests: List[ChangeRequestRef] = Field(default_factory=list)
    screenshots: List[ScreenshotAsset] = Field(default_factory=list)

    share_id: Optional[str] = None
    view_count: int = 0
    result_webhook_url: Optional[str] = None

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    completed_at: Optional[datetime] = None

    @property
    def pr_count(self) -> int:
        return max(1, len(self.pull_requests))

    @property
    def repo_full_name(self) -> str:
        return f"{self.repo_owner}/{self.repo_name}"


class ApiCredential(BaseModel):
    """Stored API key. The plaintext secret is never kept."""

    id: str
    owner_id: str
    name: str
    key_hash: str
    key_prefix: str
    created_at: datetime = Field(default_factory=_utcnow)
    last_used_at: Optional[datetime] = None
    revoked_at: Optional[datetime] = None

    @property
    def active(self) -> bool:
        return self.revoked_at is None


class IssuedCredential(BaseModel):
    """Creation response: the only place the plaintext key appears."""

    credential: ApiCredential
    key: str


class RenderCompletion(BaseModel):
    """Inbound render callback payload."""

    video_id: str = Field(validation_alias=AliasChoices("jobId", "videoId", "video_id"))
    video_url: Optional[str] = Field(default=None, alias="videoUrl")
    thumbnail_url: Optional[str] = Field(default=None, alias="thumbnailUrl")
    duration_seconds: Optional[float] = Field(default=None, alias="durationSeconds")
    error: Optional[str] = None

    model_config = {"populate_by_name": True}

    @field_validator("video_id", mode="before")
    @classmethod
    def _non_empty_id(cls, value: Any) -> str:
        text = str(value or "").strip()
        if not text:
            raise ValueError("Video ID is required")
        return text
