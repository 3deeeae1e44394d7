import asyncio
import subprocess
from pathlib import Path
from typing import Optional
import logging

from constants import TranscodeDefaults
from exceptions import TransformFailureError
from utils.ffmpeg_helper import get_ffmpeg_path

logger = logging.getLogger(__name__)

STDERR_TAIL_LINES = 20

# Mirror the video, scale the looped overlay to the mirrored frame, composite it on top.
# shortest=1 ends the output with the clip, not with the endless overlay stream.
FILTER_GRAPH = (
    "[0:v]hflip[flipped];"
    "[1:v][flipped]scale2ref[logo][base];"
    "[base][logo]overlay=0:0:format=auto:shortest=1[out]"
)


def _tail(text: str, lines: int = STDERR_TAIL_LINES) -> str:
    return '\n'.join(text.strip().splitlines()[-lines:])


class FFmpegRunner:
    """
    Runs the fixed mirror + overlay transform as an ffmpeg subprocess.

    The pipeline awaits the subprocess without blocking the event loop. Every
    run has a deadline; on expiry or task cancellation the process is killed
    and reaped before control returns.
    """

    def __init__(
        self,
        ffmpeg_path: str,
        overlay_path: Path,
        timeout_seconds: float = TranscodeDefaults.TIMEOUT_SECONDS,
    ):
        self.ffmpeg_path = ffmpeg_path
        self.overlay_path = Path(overlay_path)
        self.timeout_seconds = timeout_seconds

    def build_args(self, input_path: Path, output_path: Path) -> list:
        """Full argument vector for one transform, binary excluded"""
        return [
            '-hide_banner', '-nostdin', '-loglevel', 'error',
            '-y',
            '-i', str(input_path),
            '-loop', '1', '-i', str(self.overlay_path),
            '-filter_complex', FILTER_GRAPH,
            '-map', '[out]',
            '-map', '0:a?',
            '-c:v', TranscodeDefaults.VIDEO_CODEC,
            '-preset', TranscodeDefaults.PRESET,
            '-crf', str(TranscodeDefaults.CRF),
            '-pix_fmt', TranscodeDefaults.PIXEL_FORMAT,
            '-c:a', TranscodeDefaults.AUDIO_CODEC,
            '-b:a', TranscodeDefaults.AUDIO_BITRATE,
            '-movflags', '+faststart',
            str(output_path),
        ]

    async def run(self, input_path: Path, output_path: Path) -> subprocess.CompletedProcess:
        """Transform `input_path` into `output_path`

        Raises:
            TransformFailureError: If ffmpeg or the overlay is missing, ffmpeg exits
                non-zero, produces no output, or is killed at the deadline
        """
        if not self.overlay_path.is_file():
            raise TransformFailureError(f"Overlay image not found: {self.overlay_path}")

        try:
            binary = get_ffmpeg_path(self.ffmpeg_path)
        except FileNotFoundError as e:
            raise TransformFailureError(str(e)) from e

        result = await self.run_command([binary] + self.build_args(input_path, output_path))

        if not Path(output_path).is_file() or Path(output_path).stat().st_size == 0:
            raise TransformFailureError(
                f"ffmpeg exited cleanly but produced no output at {output_path}",
                returncode=result.returncode,
            )
        return result

    async def run_command(self, cmd: list, timeout_seconds: Optional[float] = None) -> subprocess.CompletedProcess:
        """Run `cmd` to completion under a deadline

        Args:
            cmd: Full argument vector including the binary
            timeout_seconds: Deadline override; defaults to the runner's deadline

        Returns:
            CompletedProcess with decoded stdout and stderr

        Raises:
            TransformFailureError: On non-zero exit, launch failure or deadline expiry
        """
        cmd = [str(arg) for arg in cmd]
        deadline = self.timeout_seconds if timeout_seconds is None else timeout_seconds

        logger.info(f"Running ffmpeg: {' '.join(cmd)}")

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise TransformFailureError(f"Could not start {cmd[0]}: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=deadline)
        except asyncio.TimeoutError:
            await self._kill(process)
            logger.error(f"ffmpeg exceeded {deadline}s deadline, killed (pid {process.pid})")
            raise TransformFailureError(
                f"Transform exceeded {deadline}s deadline",
                returncode=process.returncode,
                timed_out=True,
            )
        except asyncio.CancelledError:
            await self._kill(process)
            logger.warning(f"ffmpeg cancelled, killed (pid {process.pid})")
            raise

        stdout_text = stdout.decode(errors='replace')
        stderr_text = stderr.decode(errors='replace')

        if process.returncode != 0:
            tail = _tail(stderr_text)
            logger.error(f"ffmpeg failed with code {process.returncode}: {tail}")
            raise TransformFailureError(
                f"ffmpeg failed with code {process.returncode}",
                returncode=process.returncode,
                stderr_tail=tail,
            )

        logger.info("ffmpeg completed successfully")
        return subprocess.CompletedProcess(cmd, process.returncode, stdout_text, stderr_text)

    @staticmethod
    async def _kill(process: asyncio.subprocess.Process):
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
        # Reap so no zombie outlives the job
        await process.wait()
