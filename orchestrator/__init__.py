"""Job orchestration: store, dispatcher, stage pipeline and service."""

from .dispatcher import JobDispatcher
from .notifications import ResultNotifier, build_result_payload
from .pipeline import JobPipeline
from .service import VideoOrchestrator
from .store import InMemoryJobStore

__all__ = [
    "InMemoryJobStore",
    "JobDispatcher",
    "JobPipeline",
    "ResultNotifier",
    "VideoOrchestrator",
    "build_result_payload",
]
