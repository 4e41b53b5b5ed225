"""
Utils Module
Logging setup and the shared error taxonomy.
"""
from .logger import configure_service_logging, setup_logger
from .exceptions import (
    AuthError,
    CaptureError,
    ClientInputError,
    ConfigurationError,
    CredentialLimitExceeded,
    CrossRepositoryReference,
    DuplicateReference,
    InvalidReference,
    InvalidTransition,
    JobNotFound,
    LLMError,
    MediaStorageError,
    NarrativeParseError,
    PRReelError,
    RateLimited,
    RecordingRejected,
    ReferenceCountError,
    RenderDispatchError,
    RetryNotAllowed,
    SourceFetchError,
    StageError,
    Unauthorized,
    VoiceSynthesisError,
)

__all__ = [
    "configure_service_logging",
    "setup_logger",
    "AuthError",
    "CaptureError",
    "ClientInputError",
    "ConfigurationError",
    "CredentialLimitExceeded",
    "CrossRepositoryReference",
    "DuplicateReference",
    "InvalidReference",
    "InvalidTransition",
    "JobNotFound",
    "LLMError",
    "MediaStorageError",
    "NarrativeParseError",
    "PRReelError",
    "RateLimited",
    "RecordingRejected",
    "ReferenceCountError",
    "RenderDispatchError",
    "RetryNotAllowed",
    "SourceFetchError",
    "StageError",
    "Unauthorized",
    "VoiceSynthesisError",
]
