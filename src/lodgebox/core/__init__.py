"""Core module - Shared configuration and types."""

from lodgebox.core.config import EndpointConfig, UploadConfig
from lodgebox.core.types import SubmissionStatus

__all__ = [
    # Config
    "EndpointConfig",
    "UploadConfig",
    # Types
    "SubmissionStatus",
]
