"""In-memory job store; the single owner of job state."""

from __future__ import annotations

from datetime import datetime, timezone
from threading import Lock
from typing import Any, Dict, Iterable, List, Optional, Set
from uuid import uuid4

from core import (
    ALLOWED_TRANSITIONS,
    RETRYABLE_STATUSES,
    ChangeRequestRef,
    JobStatus,
    ScreenshotAsset,
    VideoJob,
)
from utils.exceptions import InvalidTransition, JobNotFound, RetryNotAllowed

SHARE_ID_LENGTH = 10

# Fields that only change through transition/reset_for_retry.
_STATUS_FIELDS = {"status", "id", "owner_id", "share_id", "created_at"}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_job_id() -> str:
    return f"vid_{_utcnow().strftime('%Y%m%d_%H%M%S')}_{uuid4().hex[:8]}"


class InMemoryJobStore:
    """
    Thread-safe store for jobs and their status events.

    Every read returns a deep copy; callers never hold a live record. Status
    moves go through ``transition``, which checks the current state under the
    lock (compare-and-set).
    """

    def __init__(self) -> None:
        self._jobs: Dict[str, VideoJob] = {}
        self._share_index: Dict[str, str] = {}
        self._issued_share_ids: Set[str] = set()
        self._events: Dict[str, List[Dict[str, str]]] = {}
        self._lock = Lock()

    def _new_share_id(self) -> str:
        while True:
            candidate = uuid4().hex[:SHARE_ID_LENGTH]
            if candidate not in self._issued_share_ids:
                self._issued_share_ids.add(candidate)
                return candidate

    def _require(self, job_id: str) -> VideoJob:
        job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFound(job_id)
        return job

    def _record(self, job_id: str, event: str, message: str) -> None:
        self._events.setdefault(job_id, []).append(
            {
                "ts": _utcnow().isoformat(timespec="milliseconds"),
                "event": event,
                "message": message,
            }
        )

    def create(self, job: VideoJob) -> VideoJob:
        with self._lock:
            if job.id in self._jobs:
                raise ValueError(f"duplicate job id: {job.id}")
            record = job.model_copy(deep=True)
            record.share_id = self._new_share_id()
            self._jobs[record.id] = record
            self._share_index[record.share_id] = record.id
            self._events[record.id] = []
            self._record(record.id, "status", record.status.value)
            return record.model_copy(deep=True)

    def get(self, job_id: str) -> Optional[VideoJob]:
        with self._lock:
            job = self._jobs.get(job_id)
            return job.model_copy(deep=True) if job else None

    def get_by_share_id(self, share_id: str) -> Optional[VideoJob]:
        with self._lock:
            job_id = self._share_index.get(share_id)
            job = self._jobs.get(job_id) if job_id else None
            return job.model_copy(deep=True) if job else None

    def list_for_owner(self, owner_id: str) -> List[VideoJob]:
        with self._lock:
            items = [job.model_copy(deep=True) for job in self._jobs.values() if job.owner_id == owner_id]
        return sorted(items, key=lambda job: job.created_at, reverse=True)

    def update(self, job_id: str, **fields: Any) -> VideoJob:
        """Write non-status fields."""
        blocked = _STATUS_FIELDS.intersection(fields)
        if blocked:
            raise ValueError(f"fields not writable through update: {sorted(blocked)}")
        with self._lock:
            job = self._require(job_id)
            for key, value in fields.items():
                setattr(job, key, value)
            job.updated_at = _utcnow()
            return job.model_copy(deep=True)

    def set_pull_requests(self, job_id: str, refs: Iterable[ChangeRequestRef]) -> VideoJob:
        ordered = sorted((ref.model_copy(deep=True) for ref in refs), key=lambda ref: ref.display_order)
        numbers = [ref.number for ref in ordered]
        if len(numbers) != len(set(numbers)):
            raise ValueError("duplicate PR number for job")
        return self.update(job_id, pull_requests=ordered)

    def set_screenshots(self, job_id: str, screenshots: Iterable[ScreenshotAsset]) -> VideoJob:
        items = [
            shot.model_copy(update={"display_order": idx})
            for idx, shot in enumerate(screenshots)
        ]
        return self.update(job_id, screenshots=items)

    def transition(
        self,
        job_id: str,
        target: JobStatus,
        *,
        expected: Optional[Iterable[JobStatus]] = None,
        **fields: Any,
    ) -> VideoJob:
        """
        Move a job to ``target`` and write ``fields`` atomically.

        ``expected`` narrows the allowed source states further; a job that was
        moved on by someone else raises InvalidTransition instead of being
        overwritten.
        """
        with self._lock:
            job = self._require(job_id)
            current = job.status
            allowed = target in ALLOWED_TRANSITIONS.get(current, frozenset())
            if expected is not None and current not in set(expected):
                allowed = False
            if not allowed:
                raise InvalidTransition(job_id, current.value, target.value)

            for key, value in fields.items():
                if key in _STATUS_FIELDS:
                    raise ValueError(f"field not writable through transition: {key}")
                setattr(job, key, value)
            job.status = target
            job.updated_at = _utcnow()
            self._record(job_id, "status", target.value)
            return job.model_copy(deep=True)

    def reset_for_retry(self, job_id: str) -> VideoJob:
        """failed/rendering -> pending, clearing the error message."""
        with self._lock:
            job = self._require(job_id)
            if job.status not in RETRYABLE_STATUSES:
                raise RetryNotAllowed(job.status.value)
            job.status = JobStatus.PENDING
            job.error_message = None
            job.updated_at = _utcnow()
            self._record(job_id, "retry", JobStatus.PENDING.value)
            return job.model_copy(deep=True)

    def increment_views(self, share_id: str) -> Optional[VideoJob]:
        """Count a view of a completed job. Returns None for unknown or unfinished jobs."""
        with self._lock:
            job_id = self._share_index.get(share_id)
            job = self._jobs.get(job_id) if job_id else None
            if job is None or job.status != JobStatus.COMPLETE:
                return None
            job.view_count += 1
            return job.model_copy(deep=True)

    def delete(self, job_id: str) -> Optional[VideoJob]:
        """Remove a job. Its share id stays reserved."""
        with self._lock:
            job = self._jobs.pop(job_id, None)
            if job is None:
                return None
            if job.share_id:
                self._share_index.pop(job.share_id, None)
            self._events.pop(job_id, None)
            return job

    def list_events(self, job_id: str) -> List[Dict[str, str]]:
        with self._lock:
            return [dict(item) for item in self._events.get(job_id, [])]

    def status_history(self, job_id: str) -> List[str]:
        return [item["message"] for item in self.list_events(job_id) if item["event"] in {"status", "retry"}]
