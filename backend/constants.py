"""
Application-wide constants and configuration keys.

This module centralizes all magic strings and numbers used throughout the application
to improve maintainability and reduce duplication.
"""
from enum import Enum


class FailureCategory(str, Enum):
    """
    Categorizes transcode failures so the fallback path can log a useful reason.

    Every category ends in the same place (fallback delivery of the raw
    capture); the category only changes what ends up in the logs.
    """

    STORAGE_UNAVAILABLE = 'STORAGE_UNAVAILABLE'  # Signed URL or blob I/O failed
    STORAGE_TIMEOUT = 'STORAGE_TIMEOUT'          # Blob transfer timed out
    TRANSFORM_FAILED = 'TRANSFORM_FAILED'        # ffmpeg exited non-zero
    TRANSFORM_TIMEOUT = 'TRANSFORM_TIMEOUT'      # ffmpeg killed at deadline
    TRANSFORM_MISSING_TOOL = 'TRANSFORM_MISSING_TOOL'  # ffmpeg or overlay not found
    UNKNOWN = 'UNKNOWN'

    @classmethod
    def get_ui_label(cls, category: 'FailureCategory') -> str:
        """Get human-readable label for log lines"""
        labels = {
            cls.STORAGE_UNAVAILABLE: "Storage Unavailable",
            cls.STORAGE_TIMEOUT: "Storage Timeout",
            cls.TRANSFORM_FAILED: "Transform Failed",
            cls.TRANSFORM_TIMEOUT: "Transform Timed Out",
            cls.TRANSFORM_MISSING_TOOL: "Transform Tool Missing",
            cls.UNKNOWN: "Unknown Error"
        }
        return labels.get(category, "Unknown Error")


class Role(str, Enum):
    """Device roles a connection can register as"""

    RECORDER = "recorder"
    MODERATOR = "moderator"

    @classmethod
    def parse(cls, value) -> "Role | None":
        """Return the Role for a raw wire value, or None if it is not a role."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class SignalEvents:
    """Real-time event names on the signaling channel"""

    # Inbound
    REGISTER = "register"
    MODERATOR_START = "moderator-start"
    UPLOAD_DONE = "upload-done"
    PING = "ping"

    # Outbound
    RECORDER_STATUS = "recorder-status"
    RECORD_START = "record-start"
    VIDEO_READY = "video-ready"
    PONG = "pong"
    ERROR = "error"


class ServerConfig:
    """Server configuration constants"""

    HOST = "0.0.0.0"  # Listen on all interfaces by default for device access
    PORT = 8080
    SOCKET_PATH = "/ws"


class StorageDefaults:
    """Default values for the object storage connection"""

    PORT = 443
    USE_SSL = True
    REGION = "us-east-1"


class SignedUrlTTL:
    """Lifetimes of signed URLs, in seconds"""

    UPLOAD_SECONDS = 60 * 5          # Long enough for an immediate device upload
    PIPELINE_FETCH_SECONDS = 60 * 5  # Pipeline download of the raw capture
    VIEW_SECONDS = 60 * 60 * 2       # Moderator view / re-share window


class CaptureDefaults:
    """Default values for new captures"""

    EVENT_ID = "default-event"
    EXTENSION = "webm"


class DeliveryFormat:
    """Fixed delivery format of transcoded artifacts"""

    OUTPUT_MARKER = "-mirrored"
    EXTENSION = "mp4"
    CONTENT_TYPE = "video/mp4"


class TranscodeDefaults:
    """Default values for the ffmpeg transform"""

    VIDEO_CODEC = "libx264"
    AUDIO_CODEC = "aac"
    AUDIO_BITRATE = "128k"
    PRESET = "veryfast"
    CRF = 23
    PIXEL_FORMAT = "yuv420p"
    TIMEOUT_SECONDS = 120.0
    MAX_CONCURRENCY = 2


class TransferConfig:
    """Blob transfer configuration constants"""

    CONNECT_TIMEOUT_SECONDS = 10.0
    READ_TIMEOUT_SECONDS = 120.0
    CHUNK_SIZE = 64 * 1024  # Bytes per streamed chunk


class WebSocketConfig:
    """WebSocket configuration constants"""

    SEND_QUEUE_SIZE = 100  # Per-connection outbound queue


class HTTPStatus:
    """HTTP status codes used throughout the application"""

    BAD_REQUEST = 400
    INTERNAL_SERVER_ERROR = 500
