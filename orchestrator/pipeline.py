"""Stage worker: drives one job from pending to rendering (or complete)."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from aggregator import MetadataAggregator, compute_totals
from assets import AssetExtractor
from core import (
    ChangeRequestData,
    ChangeRequestRef,
    DiscussionComment,
    JobStatus,
    Narrative,
    ResolvedReference,
    VideoJob,
)
from intelligence import NarrativeSynthesizer
from render.adapters import BaseRenderAdapter, RenderRequest, RenderScreenRecording
from render.voice import VoiceSynthesizer
from storage import BaseMediaStore
from utils.exceptions import CaptureError, InvalidTransition, JobNotFound, MediaStorageError

from .notifications import ResultNotifier
from .store import InMemoryJobStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _references(job: VideoJob) -> List[ResolvedReference]:
    if not job.pull_requests:
        return [
            ResolvedReference(
                owner=job.repo_owner,
                repo=job.repo_name,
                number=job.pr_number,
                url=job.pr_url,
                display_order=0,
            )
        ]
    return [
        ResolvedReference(
            owner=ref.owner,
            repo=ref.repo,
            number=ref.number,
            url=ref.url,
            display_order=ref.display_order,
        )
        for ref in sorted(job.pull_requests, key=lambda ref: ref.display_order)
    ]


def _flatten_comments(items: Sequence[ChangeRequestData]) -> List[DiscussionComment]:
    comments: List[DiscussionComment] = []
    for item in items:
        comments.extend(item.comments)
    return comments


class JobPipeline:
    """
    Runs the stages of one job in order and persists after each of them.

    analyzing: metadata, screenshots, narrative. generating_audio: voice-over.
    rendering: dispatch to the renderer, or complete directly when none is
    configured. Any exception fails the job with the exception text; nothing
    is retried automatically.
    """

    def __init__(
        self,
        *,
        store: InMemoryJobStore,
        aggregator: MetadataAggregator,
        extractor: AssetExtractor,
        synthesizer: NarrativeSynthesizer,
        voice: VoiceSynthesizer,
        renderer: BaseRenderAdapter,
        media_store: BaseMediaStore,
        notifier: ResultNotifier,
        public_url: str,
    ) -> None:
        self.store = store
        self.aggregator = aggregator
        self.extractor = extractor
        self.synthesizer = synthesizer
        self.voice = voice
        self.renderer = renderer
        self.media_store = media_store
        self.notifier = notifier
        self.public_url = public_url.rstrip("/")

    @property
    def callback_url(self) -> str:
        return f"{self.public_url}/api/webhook/render-complete"

    async def run(self, job_id: str) -> Optional[VideoJob]:
        stage = JobStatus.PENDING
        try:
            job = self.store.transition(job_id, JobStatus.ANALYZING, expected={JobStatus.PENDING})
            stage = JobStatus.ANALYZING
            logger.info("job_stage job_id=%s stage=%s", job_id, stage.value)

            items = await self.aggregator.aggregate(_references(job))
            job = self._persist_metadata(job, items)
            job = await self._persist_screenshots(job, items)

            narrative = await self.synthesizer.synthesize(items)
            job = self._persist_narrative(job, narrative, multi=len(items) > 1)
            stage = JobStatus.GENERATING_AUDIO
            logger.info("job_stage job_id=%s stage=%s", job_id, stage.value)

            voice = await self.voice.synthesize(narrative.script)
            audio_url = self.media_store.put(f"audio/{job_id}.mp3", voice.audio, content_type="audio/mpeg")
            job = self.store.transition(
                job_id,
                JobStatus.RENDERING,
                expected={JobStatus.GENERATING_AUDIO},
                audio_url=audio_url,
                audio_duration_ms=voice.duration_ms,
            )
            stage = JobStatus.RENDERING
            logger.info(
                "job_stage job_id=%s stage=%s audio_ms=%s duration_source=%s",
                job_id,
                stage.value,
                voice.duration_ms,
                voice.duration_source,
            )

            if self.renderer.configured:
                await self.renderer.dispatch(self.build_render_request(job, items, narrative))
                return job

            job = self.store.transition(
                job_id,
                JobStatus.COMPLETE,
                expected={JobStatus.RENDERING},
                completed_at=_utcnow(),
            )
            logger.info("job_complete job_id=%s renderer=none", job_id)
            await self.notifier.notify(job)
            return job
        except Exception as exc:
            return await self._fail(job_id, stage, exc)

    def _persist_metadata(self, job: VideoJob, items: Sequence[ChangeRequestData]) -> VideoJob:
        primary = items[0]
        refs = [
            ChangeRequestRef(
                job_id=job.id,
                owner=item.reference.owner,
                repo=item.reference.repo,
                number=item.number,
                url=item.reference.url,
                display_order=item.reference.display_order,
                title=item.title,
                description=item.description,
                author=item.author,
                files_changed=item.files_changed,
                additions=item.additions,
                deletions=item.deletions,
            )
            for item in items
        ]
        self.store.set_pull_requests(job.id, refs)
        return self.store.update(
            job.id,
            pr_title=primary.title,
            pr_description=primary.description,
            pr_author=primary.author,
            pr_author_avatar=primary.author_avatar,
            files_changed=primary.files_changed,
            additions=primary.additions,
            deletions=primary.deletions,
            **compute_totals(items),
        )

    async def _persist_screenshots(self, job: VideoJob, items: Sequence[ChangeRequestData]) -> VideoJob:
        try:
            screenshots = await self.extractor.extract(job.id, _flatten_comments(items))
            return self.store.set_screenshots(job.id, screenshots)
        except (CaptureError, MediaStorageError) as exc:
            logger.warning("screenshots_skipped job_id=%s error=%s", job.id, exc)
            return job

    def _persist_narrative(self, job: VideoJob, narrative: Narrative, *, multi: bool) -> VideoJob:
        fields = {
            "summary": narrative.summary,
            "script": narrative.script,
            "change_type": narrative.change_type,
        }
        if multi and narrative.unified_title:
            fields["pr_title"] = narrative.unified_title
        return self.store.transition(
            job.id,
            JobStatus.GENERATING_AUDIO,
            expected={JobStatus.ANALYZING},
            **fields,
        )

    def build_render_request(
        self,
        job: VideoJob,
        items: Sequence[ChangeRequestData],
        narrative: Narrative,
    ) -> RenderRequest:
        primary = items[0]
        multi = len(items) > 1
        recording = None
        if job.screen_recording is not None:
            recording = RenderScreenRecording(
                url=job.screen_recording.url,
                duration_ms=job.screen_recording.duration_ms,
            )
        return RenderRequest(
            video_id=job.id,
            title=(narrative.unified_title if multi and narrative.unified_title else primary.title),
            description=primary.description,
            author=primary.author,
            author_avatar=primary.author_avatar,
            files_changed=job.total_files_changed if multi else primary.files_changed,
            additions=job.total_additions if multi else primary.additions,
            deletions=job.total_deletions if multi else primary.deletions,
            files=list(primary.files),
            repo=job.repo_full_name,
            pr_count=len(items),
            pr_titles=[item.title for item in items] if multi else None,
            screenshots=list(job.screenshots),
            screen_recording=recording,
            summary=narrative.summary,
            script=narrative.script,
            audio_url=job.audio_url or "",
            audio_duration_ms=int(job.audio_duration_ms or 0),
            callback_url=self.callback_url,
        )

    async def _fail(self, job_id: str, stage: JobStatus, exc: Exception) -> Optional[VideoJob]:
        message = str(exc) or exc.__class__.__name__
        logger.exception("job_failed job_id=%s stage=%s error=%s", job_id, stage.value, message)
        try:
            job = self.store.transition(
                job_id,
                JobStatus.FAILED,
                expected={stage},
                error_message=message,
            )
        except (InvalidTransition, JobNotFound) as state_exc:
            # Deleted or retried while this run was in flight.
            logger.warning("job_fail_skipped job_id=%s reason=%s", job_id, state_exc)
            return None
        await self.notifier.notify(job)
        return job
