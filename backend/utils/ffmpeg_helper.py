"""
FFmpeg Binary Helper

Resolves the ffmpeg binary used by the transcode pipeline.

Lookup order:
1. The configured value, if it is a path to an existing file
2. The configured value looked up on PATH (default "ffmpeg")
3. A bundled binary in <project>/ffmpeg_bins/
"""
import shutil
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

BUNDLED_DIR = Path(__file__).resolve().parent.parent.parent / 'ffmpeg_bins'


def get_ffmpeg_path(configured: str = 'ffmpeg') -> str:
    """
    Get path to the ffmpeg binary.

    Args:
        configured: Configured binary name or path

    Returns:
        Absolute path to the binary

    Raises:
        FileNotFoundError: If no usable binary is found
    """
    candidate = Path(configured).expanduser()
    if candidate.is_file():
        return str(candidate.resolve())

    on_path = shutil.which(configured)
    if on_path:
        return on_path

    bundled = BUNDLED_DIR / Path(configured).name
    if bundled.is_file():
        logger.info(f"Using bundled ffmpeg: {bundled}")
        return str(bundled)

    raise FileNotFoundError(
        f"ffmpeg not found (configured: {configured}). "
        f"Install ffmpeg, set FFMPEG_PATH, or place a binary in {BUNDLED_DIR}"
    )
