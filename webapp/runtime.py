"""Shared runtime singletons for web/CLI entrypoints."""

from __future__ import annotations

from threading import Lock
from typing import Optional

from aggregator import MetadataAggregator
from assets import AssetExtractor, HeadlessCaptureClient
from auth import ApiKeyService, FixedWindowRateLimiter
from config import Settings, get_settings
from intelligence import NarrativeSynthesizer
from orchestrator import InMemoryJobStore, JobPipeline, ResultNotifier, VideoOrchestrator
from render import RemoteRenderAdapter, VoiceSynthesizer
from sources import GitHubClient
from storage import LocalMediaStore


_LOCK = Lock()
_ORCHESTRATOR: Optional[VideoOrchestrator] = None
_API_KEYS: Optional[ApiKeyService] = None
_RATE_LIMITER: Optional[FixedWindowRateLimiter] = None


def build_orchestrator(settings: Settings) -> VideoOrchestrator:
    """Wire every stage from settings."""
    public_url = settings.app.public_url
    store = InMemoryJobStore()
    media_store = LocalMediaStore(
        root=settings.storage.media_root,
        public_base_url=settings.storage.public_base_url,
    )
    notifier = ResultNotifier(public_url=public_url)
    pipeline = JobPipeline(
        store=store,
        aggregator=MetadataAggregator(client=GitHubClient(settings=settings.github)),
        extractor=AssetExtractor(
            media_store,
            capture_client=HeadlessCaptureClient(settings=settings.render),
        ),
        synthesizer=NarrativeSynthesizer(settings=settings.llm),
        voice=VoiceSynthesizer(settings=settings.voice),
        renderer=RemoteRenderAdapter(settings=settings.render),
        media_store=media_store,
        notifier=notifier,
        public_url=public_url,
    )
    return VideoOrchestrator(
        store=store,
        pipeline=pipeline,
        media_store=media_store,
        notifier=notifier,
        public_url=public_url,
    )


def get_orchestrator() -> VideoOrchestrator:
    global _ORCHESTRATOR
    with _LOCK:
        if _ORCHESTRATOR is None:
            _ORCHESTRATOR = build_orchestrator(get_settings())
        return _ORCHESTRATOR


def get_api_key_service() -> ApiKeyService:
    global _API_KEYS
    with _LOCK:
        if _API_KEYS is None:
            _API_KEYS = ApiKeyService(settings=get_settings().api_keys)
        return _API_KEYS


def get_rate_limiter() -> FixedWindowRateLimiter:
    global _RATE_LIMITER
    with _LOCK:
        if _RATE_LIMITER is None:
            _RATE_LIMITER = FixedWindowRateLimiter(settings=get_settings().api_keys)
        return _RATE_LIMITER


def reset_runtime() -> None:
    """Drop cached singletons so the next access rebuilds them from settings."""
    global _ORCHESTRATOR, _API_KEYS, _RATE_LIMITER
    with _LOCK:
        _ORCHESTRATOR = None
        _API_KEYS = None
        _RATE_LIMITER = None
