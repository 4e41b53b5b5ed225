"""
Custom Exceptions
Error taxonomy shared by the pipeline, the auth layer and the web API.
"""
from datetime import datetime
from typing import Optional


class PRReelError(Exception):
    """Base error for the service."""

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self):
        return self.message


class ConfigurationError(PRReelError):
    """A required setting is missing or malformed."""
    pass


# Client input errors: raised synchronously, before a job exists.

class ClientInputError(PRReelError):
    pass


class InvalidReference(ClientInputError):
    def __init__(self, url: str):
        super().__init__(f"Invalid PR URL: {url}", {"url": url})
        self.url = url


class CrossRepositoryReference(ClientInputError):
    def __init__(self, expected: str, actual: str):
        super().__init__(
            f"All PRs must be from the same repository. Expected {expected}, got {actual}",
            {"expected": expected, "actual": actual},
        )


class DuplicateReference(ClientInputError):
    def __init__(self, number: int):
        super().__init__(f"Duplicate PR number: #{number}", {"number": number})
        self.number = number


class ReferenceCountError(ClientInputError):
    pass


class RetryNotAllowed(ClientInputError):
    def __init__(self, status: str):
        super().__init__("Can only retry failed or stuck videos", {"status": status})


class RecordingRejected(ClientInputError):
    pass


# Stage errors: caught by the pipeline worker and recorded on the job.

class StageError(PRReelError):
    pass


class SourceFetchError(StageError):
    def __init__(self, message: str, status_code: Optional[int] = None, **kwargs):
        super().__init__(message, kwargs)
        self.status_code = status_code


class NarrativeParseError(StageError):
    pass


class VoiceSynthesisError(StageError):
    def __init__(self, message: str, status_code: Optional[int] = None, **kwargs):
        super().__init__(message, kwargs)
        self.status_code = status_code


class RenderDispatchError(StageError):
    pass


class CaptureError(StageError):
    """Headless capture failed; always handled by the asset extractor."""
    pass


class MediaStorageError(StageError):
    pass


class LLMError(StageError):
    """LLM provider call failed."""

    def __init__(self, message: str, provider: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.provider = provider


# Auth layer.

class AuthError(PRReelError):
    pass


class Unauthorized(AuthError):
    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class RateLimited(AuthError):
    def __init__(self, limit: int, reset_at: datetime):
        super().__init__("Rate limit exceeded", {"limit": limit, "reset_at": reset_at.isoformat()})
        self.limit = limit
        self.remaining = 0
        self.reset_at = reset_at


class CredentialLimitExceeded(AuthError):
    def __init__(self, limit: int):
        super().__init__(
            f"Maximum of {limit} active API keys allowed. Revoke an existing key to create a new one.",
            {"limit": limit},
        )
        self.limit = limit


# Job lifecycle.

class JobNotFound(PRReelError):
    def __init__(self, job_id: str):
        super().__init__(f"Video not found: {job_id}", {"job_id": job_id})
        self.job_id = job_id


class InvalidTransition(PRReelError):
    def __init__(self, job_id: str, current: str, target: str):
        super().__init__(
            f"Invalid transition for {job_id}: {current} -> {target}",
            {"job_id": job_id, "current": current, "target": target},
        )
        self.current = current
        self.target = target
