"""Orchestrator service: job lifecycle operations used by the web API and CLI."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from core import (
    ChangeRequestRef,
    JobOrigin,
    JobStatus,
    RenderCompletion,
    ScreenRecordingAsset,
    ScreenshotSource,
    VideoJob,
)
from sources import resolve_references
from storage import BaseMediaStore
from utils.exceptions import JobNotFound, MediaStorageError, RecordingRejected

from .dispatcher import JobDispatcher
from .notifications import ResultNotifier
from .pipeline import JobPipeline
from .store import InMemoryJobStore, new_job_id

logger = logging.getLogger(__name__)

MAX_RECORDING_BYTES = 50 * 1024 * 1024
MAX_RECORDING_MS = 60 * 1000
RECORDING_CONTENT_TYPES = frozenset({"video/mp4", "video/webm", "video/quicktime"})
RECORDING_LOCKED_STATUSES = frozenset({JobStatus.RENDERING, JobStatus.COMPLETE})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VideoOrchestrator:
    """
    Front door for job state.

    Creation validates references before anything is stored, then hands the
    job to the dispatcher and returns at once. The render webhook is the only
    caller that finishes a job that reached ``rendering``.
    """

    def __init__(
        self,
        *,
        store: InMemoryJobStore,
        pipeline: JobPipeline,
        media_store: BaseMediaStore,
        notifier: ResultNotifier,
        public_url: str,
        dispatcher: Optional[JobDispatcher] = None,
    ) -> None:
        self.store = store
        self.pipeline = pipeline
        self.media_store = media_store
        self.notifier = notifier
        self.public_url = public_url.rstrip("/")
        self.dispatcher = dispatcher or JobDispatcher(pipeline.run)

    def share_url(self, job: VideoJob) -> str:
        return f"{self.public_url}/v/{job.share_id}"

    def status_url(self, job: VideoJob) -> str:
        return f"{self.public_url}/api/v1/videos/{job.id}"

    def create_job(
        self,
        owner_id: str,
        urls: Sequence[str],
        *,
        origin: JobOrigin = JobOrigin.DASHBOARD,
        result_webhook_url: Optional[str] = None,
    ) -> VideoJob:
        refs = resolve_references(urls)
        primary = refs[0]
        job_id = new_job_id()
        job = VideoJob(
            id=job_id,
            owner_id=owner_id,
            origin=origin,
            repo_owner=primary.owner,
            repo_name=primary.repo,
            pr_number=primary.number,
            pr_url=primary.url,
            result_webhook_url=result_webhook_url,
            pull_requests=[
                ChangeRequestRef(
                    job_id=job_id,
                    owner=ref.owner,
                    repo=ref.repo,
                    number=ref.number,
                    url=ref.url,
                    display_order=ref.display_order,
                )
                for ref in refs
            ],
        )
        created = self.store.create(job)
        logger.info(
            "job_created job_id=%s owner_id=%s origin=%s prs=%s",
            created.id,
            owner_id,
            origin.value,
            ",".join(str(ref.number) for ref in refs),
        )
        self.dispatcher.submit(created.id)
        return created

    def get_job(self, owner_id: str, job_id: str) -> VideoJob:
        """Owner-scoped lookup; someone else's job is reported as missing."""
        job = self.store.get(job_id)
        if job is None or job.owner_id != owner_id:
            raise JobNotFound(job_id)
        return job

    def list_jobs(self, owner_id: str) -> List[VideoJob]:
        return self.store.list_for_owner(owner_id)

    def retry_job(self, owner_id: str, job_id: str) -> VideoJob:
        self.get_job(owner_id, job_id)
        job = self.store.reset_for_retry(job_id)
        logger.info("job_retry job_id=%s", job_id)
        self.dispatcher.submit(job_id)
        return job

    def complete_render(self, completion: RenderCompletion) -> VideoJob:
        """Apply the renderer's callback. Only valid while the job is rendering."""
        if completion.error:
            job = self.store.transition(
                completion.video_id,
                JobStatus.FAILED,
                expected={JobStatus.RENDERING},
                error_message=completion.error,
            )
            logger.warning("render_failed job_id=%s error=%s", job.id, completion.error)
        else:
            job = self.store.transition(
                completion.video_id,
                JobStatus.COMPLETE,
                expected={JobStatus.RENDERING},
                video_url=completion.video_url,
                thumbnail_url=completion.thumbnail_url,
                duration_seconds=completion.duration_seconds,
                completed_at=_utcnow(),
            )
            logger.info("render_complete job_id=%s video_url=%s", job.id, job.video_url)
        if job.result_webhook_url:
            self.dispatcher.spawn(self.notifier.notify(job))
        return job

    def view_shared(self, share_id: str) -> VideoJob:
        job = self.store.increment_views(share_id)
        if job is None:
            raise JobNotFound(share_id)
        return job

    def _remove_blob(self, url_or_path: Optional[str], *, is_path: bool = False) -> None:
        path = url_or_path if is_path else self.media_store.path_from_url(url_or_path)
        if not path:
            return
        try:
            self.media_store.delete(path)
        except MediaStorageError as exc:
            logger.warning("media_delete_failed path=%s error=%s", path, exc)

    def delete_job(self, owner_id: str, job_id: str) -> VideoJob:
        job = self.get_job(owner_id, job_id)
        self._remove_blob(job.audio_url)
        self._remove_blob(job.video_url)
        self._remove_blob(job.thumbnail_url)
        if job.screen_recording is not None:
            self._remove_blob(job.screen_recording.storage_path, is_path=True)
        for shot in job.screenshots:
            if shot.source == ScreenshotSource.AUTO_CAPTURE:
                self._remove_blob(shot.url)
        self.store.delete(job_id)
        logger.info("job_deleted job_id=%s", job_id)
        return job

    def attach_recording(
        self,
        owner_id: str,
        job_id: str,
        *,
        data: bytes,
        content_type: str,
        duration_ms: int,
    ) -> VideoJob:
        job = self.get_job(owner_id, job_id)
        if job.status in RECORDING_LOCKED_STATUSES:
            raise RecordingRejected(
                "Cannot upload recording for videos that are already rendering or complete"
            )
        if not data:
            raise RecordingRejected("No file provided")
        if content_type not in RECORDING_CONTENT_TYPES:
            raise RecordingRejected("Invalid file type. Allowed: MP4, WebM, MOV")
        if len(data) > MAX_RECORDING_BYTES:
            raise RecordingRejected("File too large. Maximum size is 50MB")
        if duration_ms <= 0:
            raise RecordingRejected("Duration is required")
        if duration_ms > MAX_RECORDING_MS:
            raise RecordingRejected("Recording too long. Maximum duration is 60 seconds")

        if job.screen_recording is not None:
            self._remove_blob(job.screen_recording.storage_path, is_path=True)

        path = f"recordings/{job_id}.mp4"
        url = self.media_store.put(path, data, content_type=content_type)
        recording = ScreenRecordingAsset(
            storage_path=path,
            url=url,
            duration_ms=int(duration_ms),
            size_bytes=len(data),
            content_type=content_type,
        )
        logger.info("recording_attached job_id=%s bytes=%s duration_ms=%s", job_id, len(data), duration_ms)
        return self.store.update(job_id, screen_recording=recording)

    def remove_recording(self, owner_id: str, job_id: str) -> bool:
        job = self.get_job(owner_id, job_id)
        if job.screen_recording is None:
            return False
        self._remove_blob(job.screen_recording.storage_path, is_path=True)
        self.store.update(job_id, screen_recording=None)
        return True

    async def drain(self) -> None:
        await self.dispatcher.drain()
