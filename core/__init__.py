"""Core contracts and shared types for the video pipeline."""

from .contracts import (
    ALLOWED_TRANSITIONS,
    RETRYABLE_STATUSES,
    TERMINAL_STATUSES,
    ApiCredential,
    ChangeRequestData,
    ChangeRequestRef,
    ChangeType,
    CommitInfo,
    DiscussionComment,
    FileDiff,
    IssuedCredential,
    JobOrigin,
    JobStatus,
    Narrative,
    RenderCompletion,
    ResolvedReference,
    ScreenRecordingAsset,
    ScreenshotAsset,
    ScreenshotSource,
    VideoJob,
    VoiceResult,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "RETRYABLE_STATUSES",
    "TERMINAL_STATUSES",
    "ApiCredential",
    "ChangeRequestData",
    "ChangeRequestRef",
    "ChangeType",
    "CommitInfo",
    "DiscussionComment",
    "FileDiff",
    "IssuedCredential",
    "JobOrigin",
    "JobStatus",
    "Narrative",
    "RenderCompletion",
    "ResolvedReference",
    "ScreenRecordingAsset",
    "ScreenshotAsset",
    "ScreenshotSource",
    "VideoJob",
    "VoiceResult",
]
