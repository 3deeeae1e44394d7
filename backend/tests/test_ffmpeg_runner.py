import asyncio
import os
import re
import subprocess
import sys
import time
from pathlib import Path

import pytest

from config.app_config import DEFAULT_OVERLAY_PATH
from conftest import run
from exceptions import TransformFailureError
from workers.ffmpeg_runner import FILTER_GRAPH, FFmpegRunner


@pytest.fixture
def overlay(tmp_path):
    path = tmp_path / "overlay.png"
    path.write_bytes(b"\x89PNG\r\n\x1a\n")
    return path


def _pid_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    return True


def _sleeper_script(pid_file: Path) -> str:
    """Child that records its pid and then hangs"""
    return f"import os, time; open({str(pid_file)!r}, 'w').write(str(os.getpid())); time.sleep(30)"


async def _wait_for_pid(pid_file: Path, timeout: float = 10.0) -> int:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if pid_file.exists() and pid_file.read_text().strip():
            return int(pid_file.read_text())
        await asyncio.sleep(0.05)
    raise AssertionError("child never reported its pid")


def test_build_args(overlay, tmp_path):
    runner = FFmpegRunner("ffmpeg", overlay)
    args = runner.build_args(tmp_path / "input.webm", tmp_path / "output.mp4")

    assert args[args.index("-filter_complex") + 1] == FILTER_GRAPH
    assert "hflip" in FILTER_GRAPH
    assert "shortest=1" in FILTER_GRAPH
    inputs = [args[i + 1] for i, arg in enumerate(args) if arg == "-i"]
    assert inputs == [str(tmp_path / "input.webm"), str(overlay)]
    # The still overlay must repeat for the whole clip
    overlay_index = args.index(str(overlay))
    assert args[overlay_index - 3:overlay_index - 1] == ["-loop", "1"]
    assert args[args.index("-c:v") + 1] == "libx264"
    assert args[args.index("-c:a") + 1] == "aac"
    assert "0:a?" in args
    assert args[-1] == str(tmp_path / "output.mp4")


def test_run_command_success(overlay):
    runner = FFmpegRunner("ffmpeg", overlay)

    result = run(runner.run_command([sys.executable, "-c", "print('done')"]))

    assert result.returncode == 0
    assert result.stdout.strip() == "done"


def test_run_command_nonzero_exit(overlay):
    runner = FFmpegRunner("ffmpeg", overlay)
    script = "import sys; sys.stderr.write('bad input\\n'); sys.exit(3)"

    with pytest.raises(TransformFailureError) as exc_info:
        run(runner.run_command([sys.executable, "-c", script]))

    assert exc_info.value.returncode == 3
    assert exc_info.value.timed_out is False
    assert "bad input" in exc_info.value.details["stderr_tail"]


def test_run_command_deadline_kills_and_reaps(overlay, tmp_path):
    runner = FFmpegRunner("ffmpeg", overlay, timeout_seconds=1.0)
    pid_file = tmp_path / "child.pid"
    started = time.monotonic()

    with pytest.raises(TransformFailureError) as exc_info:
        run(runner.run_command([sys.executable, "-c", _sleeper_script(pid_file)]))

    assert exc_info.value.timed_out is True
    assert exc_info.value.returncode is not None
    assert time.monotonic() - started < 10
    assert not _pid_alive(int(pid_file.read_text()))


def test_cancellation_kills_and_reaps(overlay, tmp_path):
    runner = FFmpegRunner("ffmpeg", overlay)
    pid_file = tmp_path / "child.pid"

    async def scenario():
        task = asyncio.create_task(runner.run_command([sys.executable, "-c", _sleeper_script(pid_file)]))
        pid = await _wait_for_pid(pid_file)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        return pid

    pid = run(scenario())

    assert not _pid_alive(pid)


def test_run_command_missing_binary(overlay):
    runner = FFmpegRunner("ffmpeg", overlay)

    with pytest.raises(TransformFailureError) as exc_info:
        run(runner.run_command(["/nonexistent/bin/ffmpeg-missing", "-version"]))

    assert exc_info.value.returncode is None


def test_run_requires_overlay(tmp_path):
    runner = FFmpegRunner(sys.executable, tmp_path / "missing.png")

    with pytest.raises(TransformFailureError, match="Overlay image not found"):
        run(runner.run(tmp_path / "in.webm", tmp_path / "out.mp4"))


def test_run_requires_ffmpeg_binary(overlay, tmp_path):
    runner = FFmpegRunner("/nonexistent/bin/ffmpeg-missing", overlay)

    with pytest.raises(TransformFailureError, match="not found"):
        run(runner.run(tmp_path / "in.webm", tmp_path / "out.mp4"))


def test_run_rejects_missing_output(overlay, tmp_path, monkeypatch):
    runner = FFmpegRunner("ffmpeg", overlay)
    # A "binary" that ignores its arguments and writes nothing
    monkeypatch.setattr("workers.ffmpeg_runner.get_ffmpeg_path", lambda configured: sys.executable)
    monkeypatch.setattr(runner, "build_args", lambda i, o: ["-c", "pass"])

    with pytest.raises(TransformFailureError, match="produced no output"):
        run(runner.run(tmp_path / "in.webm", tmp_path / "out.mp4"))

    assert not Path(tmp_path / "out.mp4").exists()


# Real ffmpeg

CLIP_WIDTH, CLIP_HEIGHT, CLIP_FPS = 320, 240, 25


@pytest.fixture(scope="module")
def ffmpeg_exe():
    imageio_ffmpeg = pytest.importorskip("imageio_ffmpeg")
    return imageio_ffmpeg.get_ffmpeg_exe()


def make_clip(ffmpeg_exe, path, video_source):
    """Encode a 1 s webm with a tone track from a lavfi video source"""
    subprocess.run(
        [
            ffmpeg_exe, '-hide_banner', '-loglevel', 'error', '-y',
            '-f', 'lavfi', '-i', video_source,
            '-f', 'lavfi', '-i', 'sine=frequency=440:duration=1',
            '-c:v', 'libvpx', '-b:v', '1M', '-pix_fmt', 'yuv420p',
            '-c:a', 'libopus', '-shortest',
            str(path),
        ],
        check=True,
        capture_output=True,
    )
    return path


def count_frames(ffmpeg_exe, path) -> int:
    result = subprocess.run(
        [ffmpeg_exe, '-hide_banner', '-i', str(path), '-map', '0:v:0', '-c', 'copy', '-f', 'null', '-'],
        check=True,
        capture_output=True,
        text=True,
    )
    return int(re.findall(r"frame=\s*(\d+)", result.stderr)[-1])


def first_frame_rgb(ffmpeg_exe, path) -> bytes:
    result = subprocess.run(
        [ffmpeg_exe, '-loglevel', 'error', '-i', str(path), '-frames:v', '1', '-f', 'rawvideo', '-pix_fmt', 'rgb24', '-'],
        check=True,
        capture_output=True,
    )
    return result.stdout


def pixel(frame: bytes, x: int, y: int) -> tuple:
    offset = (y * CLIP_WIDTH + x) * 3
    return tuple(frame[offset:offset + 3])


def test_transform_keeps_every_frame(ffmpeg_exe, tmp_path):
    source = make_clip(
        ffmpeg_exe,
        tmp_path / "input.webm",
        f"testsrc=duration=1:size={CLIP_WIDTH}x{CLIP_HEIGHT}:rate={CLIP_FPS}",
    )
    output = tmp_path / "output.mp4"
    runner = FFmpegRunner(ffmpeg_exe, DEFAULT_OVERLAY_PATH, timeout_seconds=60)

    run(runner.run(source, output))

    source_frames = count_frames(ffmpeg_exe, source)
    output_frames = count_frames(ffmpeg_exe, output)
    assert source_frames == CLIP_FPS
    assert source_frames * 0.9 <= output_frames <= source_frames + 1


def test_transform_mirrors_and_keeps_overlay_transparent(ffmpeg_exe, tmp_path):
    # Left half black, right half white
    source = make_clip(
        ffmpeg_exe,
        tmp_path / "input.webm",
        f"color=c=black:s={CLIP_WIDTH}x{CLIP_HEIGHT}:r={CLIP_FPS}:d=1,"
        f"drawbox=x={CLIP_WIDTH // 2}:y=0:w={CLIP_WIDTH // 2}:h={CLIP_HEIGHT}:color=white:t=fill",
    )
    output = tmp_path / "output.mp4"
    runner = FFmpegRunner(ffmpeg_exe, DEFAULT_OVERLAY_PATH, timeout_seconds=60)

    run(runner.run(source, output))
    frame = first_frame_rgb(ffmpeg_exe, output)

    assert len(frame) == CLIP_WIDTH * CLIP_HEIGHT * 3
    # Mirrored: the white half is now on the left, untouched by the overlay
    assert min(pixel(frame, 40, 120)) > 220
    assert max(pixel(frame, 280, 120)) < 35
    # The corner badge is drawn over the (now black) bottom right
    assert 90 < sum(pixel(frame, 285, 222)) / 3 < 230


def test_transform_corrupt_input_fails(ffmpeg_exe, tmp_path):
    source = tmp_path / "input.webm"
    source.write_bytes(b"definitely not a video")
    runner = FFmpegRunner(ffmpeg_exe, DEFAULT_OVERLAY_PATH, timeout_seconds=60)

    with pytest.raises(TransformFailureError) as exc_info:
        run(runner.run(source, tmp_path / "output.mp4"))

    assert exc_info.value.returncode not in (None, 0)
