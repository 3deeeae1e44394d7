"""
Internal DTOs

DTOs for service-to-service communication within the backend.
These are not exposed to external APIs.
"""

from .transcode_dto import TranscodeJobContext, TranscodeOutcome

__all__ = ["TranscodeJobContext", "TranscodeOutcome"]
