"""
Runtime Configuration

Reads the service configuration from environment variables once at startup.
A `.env` file next to the project root is loaded first if present.

Includes:
- Object storage (MinIO / S3) connection settings with legacy fallbacks
- Signaling and CORS settings
- Transcode pipeline settings (ffmpeg path, overlay, deadline, concurrency)
- Logging locations
"""
import os
import logging
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from constants import ServerConfig, StorageDefaults, TranscodeDefaults
from exceptions import ConfigurationError

logger = logging.getLogger(__name__)

BACKEND_DIR = Path(__file__).resolve().parent.parent
DEFAULT_OVERLAY_PATH = BACKEND_DIR / "assets" / "overlay.png"
DEFAULT_LOG_DIR = Path.home() / ".moderated-capture" / "logs"


def _first_env(*names: str, default: Optional[str] = None) -> Optional[str]:
    """Return the first non-empty environment variable among `names`."""
    for name in names:
        value = os.environ.get(name)
        if value:
            return value
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ('true', '1', 'yes')


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")


@dataclass(frozen=True)
class StorageSettings:
    """Connection settings for the object storage collaborator"""

    endpoint: str
    access_key: str = field(repr=False)
    secret_key: str = field(repr=False)
    bucket: str
    port: int = StorageDefaults.PORT
    use_ssl: bool = StorageDefaults.USE_SSL
    region: str = StorageDefaults.REGION

    @property
    def endpoint_url(self) -> str:
        """Full endpoint URL for the S3 client (endpoint is a bare host name)."""
        scheme = "https" if self.use_ssl else "http"
        default_port = 443 if self.use_ssl else 80
        if self.port == default_port:
            return f"{scheme}://{self.endpoint}"
        return f"{scheme}://{self.endpoint}:{self.port}"


@dataclass(frozen=True)
class AppConfig:
    """Complete service configuration"""

    storage: StorageSettings
    allowed_origin: str = "*"
    socket_path: str = ServerConfig.SOCKET_PATH
    host: str = ServerConfig.HOST
    port: int = ServerConfig.PORT
    public_base_url: str = ""
    ffmpeg_path: str = "ffmpeg"
    overlay_image_path: Path = DEFAULT_OVERLAY_PATH
    transcode_timeout_seconds: float = TranscodeDefaults.TIMEOUT_SECONDS
    transcode_max_concurrency: int = TranscodeDefaults.MAX_CONCURRENCY
    temp_dir: Path = field(default_factory=lambda: Path(tempfile.gettempdir()))
    public_dir: Optional[Path] = None
    log_dir: Path = DEFAULT_LOG_DIR
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, load_env_file: bool = True) -> "AppConfig":
        """
        Build the configuration from environment variables.

        Args:
            load_env_file: Load a `.env` file from the project root first

        Returns:
            AppConfig instance

        Raises:
            ConfigurationError: If required storage settings are missing or malformed
        """
        if load_env_file:
            load_dotenv(BACKEND_DIR.parent / ".env")

        endpoint = _first_env("MINIO_ENDPOINT", "NEXT_PUBLIC_MINIO_ENDPOINT")
        access_key = _first_env("MINIO_ACCESS_KEY")
        secret_key = _first_env("MINIO_SECRET_KEY")
        bucket = _first_env("MINIO_BUCKET", "NEXT_PUBLIC_MINIO_BUCKET_NAME")

        missing = []
        if not endpoint:
            missing.append("MINIO_ENDPOINT")
        if not access_key:
            missing.append("MINIO_ACCESS_KEY")
        if not secret_key:
            missing.append("MINIO_SECRET_KEY")
        if not bucket:
            missing.append("MINIO_BUCKET")
        if missing:
            raise ConfigurationError(
                f"Missing required storage configuration: {', '.join(missing)}",
                missing_keys=missing
            )

        storage = StorageSettings(
            endpoint=endpoint,
            access_key=access_key,
            secret_key=secret_key,
            bucket=bucket,
            port=_env_int("MINIO_PORT", StorageDefaults.PORT),
            use_ssl=_env_bool("MINIO_USE_SSL", StorageDefaults.USE_SSL),
            region=_first_env("MINIO_REGION", default=StorageDefaults.REGION),
        )

        max_concurrency = _env_int("TRANSCODE_MAX_CONCURRENCY", TranscodeDefaults.MAX_CONCURRENCY)
        if max_concurrency < 1:
            raise ConfigurationError("TRANSCODE_MAX_CONCURRENCY must be at least 1")

        public_dir = _first_env("PUBLIC_DIR")
        temp_dir = _first_env("TEMP_DIR")

        return cls(
            storage=storage,
            allowed_origin=_first_env("ALLOWED_ORIGIN", "NEXT_PUBLIC_SITE_URL", default="*"),
            socket_path=_first_env("SOCKET_PATH", default=ServerConfig.SOCKET_PATH),
            host=_first_env("HOST", default=ServerConfig.HOST),
            port=_env_int("PORT", ServerConfig.PORT),
            public_base_url=(_first_env("PUBLIC_BASE_URL", default="") or "").rstrip("/"),
            ffmpeg_path=_first_env("FFMPEG_PATH", default="ffmpeg"),
            overlay_image_path=Path(_first_env("OVERLAY_IMAGE_PATH", default=str(DEFAULT_OVERLAY_PATH))),
            transcode_timeout_seconds=_env_float("TRANSCODE_TIMEOUT_SECONDS", TranscodeDefaults.TIMEOUT_SECONDS),
            transcode_max_concurrency=max_concurrency,
            temp_dir=Path(temp_dir) if temp_dir else Path(tempfile.gettempdir()),
            public_dir=Path(public_dir) if public_dir else BACKEND_DIR.parent / "public",
            log_dir=Path(_first_env("LOG_DIR", default=str(DEFAULT_LOG_DIR))),
            log_level=_first_env("LOG_LEVEL", default="INFO").upper(),
        )

    def log_summary(self):
        """Log the effective configuration once, without secrets."""
        logger.info(
            "Storage config => endpoint=%s port=%s use_ssl=%s bucket=%s has_keys=%s",
            self.storage.endpoint,
            self.storage.port,
            self.storage.use_ssl,
            self.storage.bucket,
            bool(self.storage.access_key and self.storage.secret_key),
        )
        logger.info(
            "Transcode config => ffmpeg=%s overlay=%s timeout=%ss concurrency=%s",
            self.ffmpeg_path,
            self.overlay_image_path,
            self.transcode_timeout_seconds,
            self.transcode_max_concurrency,
        )
