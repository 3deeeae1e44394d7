"""
Storage key derivation for captures and their transcoded counterparts.

Key format:
    capture:    {eventId}/{unixMillis}-{6 hex}.{ext}
    transcoded: {capture key without extension}-mirrored.mp4
"""
import re
import secrets
import time

from constants import CaptureDefaults, DeliveryFormat

DEFAULT_EVENT_ID = CaptureDefaults.EVENT_ID
DEFAULT_EXTENSION = CaptureDefaults.EXTENSION
OUTPUT_MARKER = DeliveryFormat.OUTPUT_MARKER
DELIVERY_EXTENSION = DeliveryFormat.EXTENSION

# Trailing ".ext" of the last path segment only
_EXTENSION_RE = re.compile(r"\.[A-Za-z0-9]+$")


def new_capture_key(event_id: str | None = None, extension: str | None = None) -> str:
    """
    Build a fresh storage key for a raw capture upload.

    Args:
        event_id: Event namespace; blank or missing falls back to "default-event"
        extension: Raw capture extension without the dot; defaults to "webm"

    Returns:
        Key of the form "{eventId}/{unixMillis}-{6 hex}.{ext}"
    """
    event_id = (event_id or "").strip() or DEFAULT_EVENT_ID
    extension = (extension or "").strip().lstrip(".") or DEFAULT_EXTENSION
    millis = int(time.time() * 1000)
    return f"{event_id}/{millis}-{secrets.token_hex(3)}.{extension}"


def key_extension(key: str, default: str = DEFAULT_EXTENSION) -> str:
    """Return the lower-cased trailing extension of a key, or `default`."""
    match = _EXTENSION_RE.search(key.rsplit("/", 1)[-1])
    return match.group(0)[1:].lower() if match else default


def derive_output_key(source_key: str) -> str:
    """
    Derive the key of the transcoded artifact for a capture key.

    Strips exactly one trailing extension (case-insensitive) and appends the
    output marker plus the delivery extension. Pure and deterministic.
    """
    head, sep, last = source_key.rpartition("/")
    stem = _EXTENSION_RE.sub("", last)
    return f"{head}{sep}{stem}{OUTPUT_MARKER}.{DELIVERY_EXTENSION}"
