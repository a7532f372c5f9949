"""Shared FFmpeg utilities for video processing."""
import re
import subprocess
import threading
import logging
from collections import deque
from typing import Callable, List, Optional, Sequence

from ..core.processor import EngineError
from ...core.config import get_settings

logger = logging.getLogger(__name__)

OUTPUT_TAIL_LINES = 40

# Key=value lines emitted on stdout by `-progress pipe:1`.
_PROGRESS_LINE_RE = re.compile(
    r"^(frame|fps|stream_\d+_\d+_q|bitrate|total_size|out_time|out_time_us|out_time_ms|"
    r"dup_frames|drop_frames|speed|progress)="
)
# out_time_ms is microseconds as well, despite its name.
_OUT_TIME_RE = re.compile(r"^out_time_(?:us|ms)=(\d+)$")


def build_ffmpeg_command(args: Sequence[str], with_progress: bool = True) -> List[str]:
    """Prefix engine arguments with the binary and the global flags we always use."""
    settings = get_settings()
    cmd = [settings.ffmpeg_binary, '-hide_banner', '-nostdin', '-y']
    if with_progress:
        cmd += ['-progress', 'pipe:1', '-nostats']
    cmd += [str(arg) for arg in args]
    return cmd


def parse_out_time(line: str) -> Optional[float]:
    """Return the encoded position in seconds for an `out_time_us=` progress line."""
    match = _OUT_TIME_RE.match(line)
    if not match:
        return None
    return int(match.group(1)) / 1_000_000


def run_ffmpeg(
    args: Sequence[str],
    duration: Optional[float] = None,
    progress_callback: Optional[Callable[[float], None]] = None,
    line_callback: Optional[Callable[[str], None]] = None,
    timeout: Optional[float] = None,
) -> List[str]:
    """
    Run an FFmpeg command, streaming its progress and diagnostic output.

    Args:
        args: Engine arguments (inputs, filters, outputs) without the binary
        duration: Expected output duration in seconds, used to turn the
            engine's position into a percentage
        progress_callback: Receives a non-decreasing percent (0-100);
            100 is sent once the process has exited successfully
        line_callback: Receives every diagnostic (stderr) line as it arrives
        timeout: Seconds before the process is killed (defaults to settings)

    Returns:
        The last diagnostic lines emitted by the engine

    Raises:
        EngineError: If ffmpeg cannot be started, exits non-zero or times out
    """
    settings = get_settings()
    cmd = build_ffmpeg_command(args)
    if timeout is None:
        timeout = settings.engine_timeout

    logger.debug(f"Running FFmpeg: {' '.join(cmd)}")

    try:
        process = subprocess.Popen(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors='replace',
            bufsize=1,
        )
    except OSError as e:
        error_msg = f"Could not start FFmpeg ({cmd[0]}): {e}"
        logger.error(error_msg)
        raise EngineError(error_msg) from e

    tail = deque(maxlen=OUTPUT_TAIL_LINES)
    timed_out = threading.Event()

    def _kill_on_timeout() -> None:
        timed_out.set()
        process.kill()

    timer = None
    if timeout:
        timer = threading.Timer(timeout, _kill_on_timeout)
        timer.daemon = True
        timer.start()

    last_percent = 0.0
    try:
        for raw_line in process.stdout:
            line = raw_line.strip()
            if not line:
                continue

            position = parse_out_time(line)
            if position is not None:
                if progress_callback and duration and duration > 0:
                    percent = min(99.0, position / duration * 100)
                    if percent > last_percent:
                        last_percent = percent
                        progress_callback(percent)
                continue
            if _PROGRESS_LINE_RE.match(line):
                continue

            tail.append(line)
            if line_callback:
                line_callback(line)

        returncode = process.wait()
    finally:
        if timer:
            timer.cancel()
        if process.poll() is None:
            process.kill()
            process.wait()
        if process.stdout:
            process.stdout.close()

    output_tail = '\n'.join(tail)
    if timed_out.is_set():
        error_msg = f"FFmpeg command timed out after {timeout:.0f}s: {' '.join(cmd)}"
        logger.error(error_msg)
        raise EngineError(error_msg, returncode=returncode, output_tail=output_tail)

    if returncode != 0:
        logger.error(f"FFmpeg failed: {' '.join(cmd)}\n{output_tail}")
        last_line = tail[-1] if tail else "no output"
        raise EngineError(
            f"FFmpeg exited with code {returncode}: {last_line}",
            returncode=returncode,
            output_tail=output_tail,
        )

    if progress_callback:
        progress_callback(100.0)

    return list(tail)
