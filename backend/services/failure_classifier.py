"""
Failure Classifier Service

Classifies transcode pipeline exceptions into categories so the fallback
path logs a specific, readable reason.
"""
import logging
from constants import FailureCategory
from exceptions import StorageUnavailableError, TransformFailureError

logger = logging.getLogger(__name__)


class FailureClassifier:
    """
    Classifies exceptions into FailureCategory values.

    Typed application errors are classified by type first; anything else
    falls back to keyword matching on the message.
    """

    TIMEOUT_KEYWORDS = [
        'timeout', 'timed out', 'deadline'
    ]

    MISSING_TOOL_KEYWORDS = [
        'no such file or directory', 'not found', 'cannot find', 'not executable'
    ]

    STORAGE_KEYWORDS = [
        'connection refused', 'connection reset', 'connection error',
        'host unreachable', 'network unreachable', 'access denied',
        'nosuchkey', 'nosuchbucket', 'forbidden', 'http 4', 'http 5'
    ]

    @classmethod
    def classify(cls, exception: Exception) -> tuple[FailureCategory, str]:
        """
        Analyze exception and return (category, cleaned_message)

        Args:
            exception: The exception that ended the job's happy path

        Returns:
            Tuple of (FailureCategory, human-readable message)
        """
        original_msg = str(exception)
        error_msg = original_msg.lower()

        logger.debug(f"Classifying transcode failure: {original_msg[:200]}")

        if isinstance(exception, TransformFailureError):
            if exception.timed_out:
                return (FailureCategory.TRANSFORM_TIMEOUT, "Transform exceeded its deadline and was killed")
            if exception.returncode is None and any(kw in error_msg for kw in cls.MISSING_TOOL_KEYWORDS):
                return (FailureCategory.TRANSFORM_MISSING_TOOL, f"Transform could not start: {original_msg[:100]}")
            return (FailureCategory.TRANSFORM_FAILED, f"Transform failed: {original_msg[:100]}")

        if isinstance(exception, StorageUnavailableError):
            if any(kw in error_msg for kw in cls.TIMEOUT_KEYWORDS):
                return (FailureCategory.STORAGE_TIMEOUT, f"Storage timed out: {original_msg[:100]}")
            return (FailureCategory.STORAGE_UNAVAILABLE, f"Storage unavailable: {original_msg[:100]}")

        if any(kw in error_msg for kw in cls.STORAGE_KEYWORDS):
            return (FailureCategory.STORAGE_UNAVAILABLE, f"Storage unavailable: {original_msg[:100]}")

        return (FailureCategory.UNKNOWN, f"Unexpected error: {type(exception).__name__}: {original_msg[:100]}")
