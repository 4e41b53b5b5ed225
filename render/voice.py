"""Voice-over synthesis through the ElevenLabs text-to-speech API."""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import subprocess
import tempfile
from typing import Callable, Optional

import httpx

from config import VoiceSettings, get_voice_settings
from core import VoiceResult
from utils.exceptions import VoiceSynthesisError

logger = logging.getLogger(__name__)

DurationReader = Callable[[bytes], Optional[float]]

FFPROBE_TIMEOUT_S = 15.0


def read_audio_duration(
    audio: bytes,
    *,
    suffix: str = ".mp3",
    timeout_s: float = FFPROBE_TIMEOUT_S,
) -> Optional[float]:
    """Read the container duration (seconds) with ffprobe; None when unavailable or unparsable."""
    ffprobe_bin = shutil.which("ffprobe")
    if not ffprobe_bin or not audio:
        return None

    fd, path = tempfile.mkstemp(suffix=suffix)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(audio)
        try:
            process = subprocess.run(
                [
                    ffprobe_bin,
                    "-v",
                    "error",
                    "-show_entries",
                    "format=duration",
                    "-of",
                    "default=noprint_wrappers=1:nokey=1",
                    path,
                ],
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                timeout=timeout_s,
            )
        except subprocess.TimeoutExpired:
            logger.warning("ffprobe_timeout timeout_s=%s", timeout_s)
            return None
    finally:
        os.unlink(path)

    if process.returncode != 0:
        return None
    try:
        value = float((process.stdout or "").strip())
    except ValueError:
        return None
    return value if value > 0 else None


def estimate_duration_ms(byte_length: int, bitrate_kbps: int = 128) -> int:
    """Approximate duration from size at a constant bitrate. Last resort only."""
    if byte_length <= 0 or bitrate_kbps <= 0:
        return 0
    return int(round(byte_length * 8 / bitrate_kbps))


class VoiceSynthesizer:
    """Script text to MP3 bytes plus a duration in milliseconds."""

    def __init__(
        self,
        *,
        settings: Optional[VoiceSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        duration_reader: Optional[DurationReader] = None,
    ) -> None:
        self.settings = settings or get_voice_settings()
        self._transport = transport
        self._read_duration = duration_reader or read_audio_duration

    async def synthesize(
        self,
        text: str,
        *,
        stability: Optional[float] = None,
        similarity_boost: Optional[float] = None,
    ) -> VoiceResult:
        if not str(text or "").strip():
            raise VoiceSynthesisError("Cannot synthesize an empty script")
        if not self.settings.api_key:
            raise VoiceSynthesisError("ElevenLabs API key is not configured")

        endpoint = f"{self.settings.api_base_url.rstrip('/')}/text-to-speech/{self.settings.voice_id}"
        headers = {
            "xi-api-key": self.settings.api_key,
            "Content-Type": "application/json",
            "Accept": "audio/mpeg",
        }
        payload = {
            "text": text,
            "model_id": self.settings.model_id,
            "voice_settings": {
                "stability": self.settings.stability if stability is None else float(stability),
                "similarity_boost": (
                    self.settings.similarity_boost if similarity_boost is None else float(similarity_boost)
                ),
            },
        }

        try:
            async with httpx.AsyncClient(timeout=self.settings.timeout_s, transport=self._transport) as client:
                response = await client.post(endpoint, json=payload, headers=headers)
        except httpx.TimeoutException as exc:
            raise VoiceSynthesisError("ElevenLabs request timed out") from exc
        except httpx.RequestError as exc:
            raise VoiceSynthesisError(f"ElevenLabs request failed: {exc}") from exc

        if response.status_code >= 400:
            raise VoiceSynthesisError(
                f"ElevenLabs API error: {response.status_code} - {response.text[:300]}",
                status_code=response.status_code,
            )

        audio = response.content
        if not audio:
            raise VoiceSynthesisError("ElevenLabs returned no audio")

        seconds = await asyncio.to_thread(self._read_duration, audio)
        if seconds:
            duration_ms, source = int(round(seconds * 1000)), "metadata"
        else:
            duration_ms = estimate_duration_ms(len(audio), self.settings.fallback_bitrate_kbps)
            source = "estimate"
            logger.warning(
                "audio_duration_estimated bytes=%s bitrate_kbps=%s duration_ms=%s",
                len(audio),
                self.settings.fallback_bitrate_kbps,
                duration_ms,
            )

        return VoiceResult(audio=audio, duration_ms=duration_ms, duration_source=source)
