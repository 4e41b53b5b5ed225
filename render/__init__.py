"""Voice synthesis and render dispatch."""

from .adapters import BaseRenderAdapter, RemoteRenderAdapter, RenderRequest, RenderScreenRecording
from .voice import VoiceSynthesizer, estimate_duration_ms, read_audio_duration

__all__ = [
    "BaseRenderAdapter",
    "RemoteRenderAdapter",
    "RenderRequest",
    "RenderScreenRecording",
    "VoiceSynthesizer",
    "estimate_duration_ms",
    "read_audio_duration",
]
