"""
TranscodeState Value Object

Immutable representation of a transcode job's position in the pipeline.
"""

from enum import Enum


class TranscodeState(str, Enum):
    """
    Transcode job state.

    Strictly linear: downloading -> transforming -> uploading -> delivered,
    with any non-terminal stage allowed to short-circuit to fallback-delivered.
    """

    DOWNLOADING = "downloading"
    TRANSFORMING = "transforming"
    UPLOADING = "uploading"
    DELIVERED = "delivered"
    FALLBACK_DELIVERED = "fallback-delivered"

    def is_terminal(self) -> bool:
        """Check if this state is terminal (no further transitions)."""
        return self in {TranscodeState.DELIVERED, TranscodeState.FALLBACK_DELIVERED}

    def can_transition_to(self, new_state: "TranscodeState") -> bool:
        """
        Check if transition to new state is valid.

        Args:
            new_state: Target state

        Returns:
            True if transition is allowed
        """
        valid_transitions = {
            TranscodeState.DOWNLOADING: {TranscodeState.TRANSFORMING, TranscodeState.FALLBACK_DELIVERED},
            TranscodeState.TRANSFORMING: {TranscodeState.UPLOADING, TranscodeState.FALLBACK_DELIVERED},
            TranscodeState.UPLOADING: {TranscodeState.DELIVERED, TranscodeState.FALLBACK_DELIVERED},
            TranscodeState.DELIVERED: set(),
            TranscodeState.FALLBACK_DELIVERED: set(),
        }

        return new_state in valid_transitions.get(self, set())
