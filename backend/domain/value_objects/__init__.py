"""
Domain Value Objects

Value objects are immutable types that represent descriptive aspects of the domain.
They have no conceptual identity and are compared by their values, not by ID.

Examples:
- TranscodeState: Position of a transcode job in the pipeline
"""

from .transcode_state import TranscodeState

__all__ = ["TranscodeState"]
