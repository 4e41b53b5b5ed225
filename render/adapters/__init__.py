"""Render adapters."""

from .base import BaseRenderAdapter, RenderRequest, RenderScreenRecording
from .remote import RemoteRenderAdapter

__all__ = [
    "BaseRenderAdapter",
    "RemoteRenderAdapter",
    "RenderRequest",
    "RenderScreenRecording",
]
