import pytest

from constants import FailureCategory
from exceptions import StorageUnavailableError, TransformFailureError
from services.failure_classifier import FailureClassifier


@pytest.mark.parametrize("exc, expected", [
    (TransformFailureError("Transform exceeded 120s deadline", timed_out=True), FailureCategory.TRANSFORM_TIMEOUT),
    (TransformFailureError("ffmpeg not found (configured: ffmpeg)"), FailureCategory.TRANSFORM_MISSING_TOOL),
    (TransformFailureError("ffmpeg failed with code 1", returncode=1), FailureCategory.TRANSFORM_FAILED),
    (StorageUnavailableError("download", "k", "Download of k timed out"), FailureCategory.STORAGE_TIMEOUT),
    (StorageUnavailableError("put_object", "k"), FailureCategory.STORAGE_UNAVAILABLE),
    (ConnectionError("Connection refused by peer"), FailureCategory.STORAGE_UNAVAILABLE),
    (KeyError("surprise"), FailureCategory.UNKNOWN),
])
def test_classify(exc, expected):
    category, message = FailureClassifier.classify(exc)
    assert category is expected
    assert message


def test_unknown_message_names_exception_type():
    _, message = FailureClassifier.classify(ValueError("odd"))
    assert "ValueError" in message
