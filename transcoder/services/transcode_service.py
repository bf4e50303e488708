# Transcoding service - FFmpeg invocation for thumbnail extraction and the H.264 web transcode

import logging
import os
import subprocess
from pathlib import Path
from typing import List, Optional, Protocol, Sequence, Union

from transcoder.core.errors import TranscodeFailed

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

# Thumbnail: one frame 1s in, 640px wide, aspect preserved
THUMBNAIL_OFFSET = "00:00:01"
THUMBNAIL_WIDTH = 640
THUMBNAIL_QUALITY = "2"

# Web playback profile: H.264/AAC MP4, width capped, even height
MAX_WIDTH = 1280
VIDEO_PRESET = "veryfast"
VIDEO_CRF = "28"
AUDIO_CHANNELS = "2"
AUDIO_BITRATE = "128k"

FFMPEG_CANDIDATES = ["/usr/bin/ffmpeg", "/usr/local/bin/ffmpeg", "ffmpeg"]
STDERR_TAIL_LINES = 20


class ProcessRunner(Protocol):
    def run(self, args: Sequence[str]) -> int:
        """Run a process to completion and return its exit code. OSError if it cannot start."""
        ...


class SubprocessRunner:
    """ProcessRunner backed by subprocess; logs the tail of stderr on failure"""

    def run(self, args: Sequence[str]) -> int:
        logger.debug(f"Running: {' '.join(args)}")
        result = subprocess.run(
            list(args),
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True,
            errors="replace",
        )
        if result.returncode != 0 and result.stderr:
            tail = "\n".join(result.stderr.strip().splitlines()[-STDERR_TAIL_LINES:])
            logger.warning(f"{os.path.basename(args[0])} exited with {result.returncode}:\n{tail}")
        return result.returncode


def find_ffmpeg(configured: Optional[str] = None) -> str:
    """Find FFmpeg binary path"""
    candidates = [configured] if configured else FFMPEG_CANDIDATES
    for path in candidates:
        try:
            result = subprocess.run([path, "-version"], capture_output=True, timeout=5)
            if result.returncode == 0:
                return path
        except (FileNotFoundError, PermissionError, subprocess.TimeoutExpired):
            continue
    raise RuntimeError("FFmpeg not found. Please install FFmpeg or set FFMPEG_PATH.")


def build_thumbnail_args(ffmpeg_path: str, input_path: PathLike, output_path: PathLike) -> List[str]:
    return [
        ffmpeg_path,
        "-i", str(input_path),
        "-ss", THUMBNAIL_OFFSET,
        "-vframes", "1",
        "-vf", f"scale={THUMBNAIL_WIDTH}:-1",
        "-q:v", THUMBNAIL_QUALITY,
        "-y", str(output_path),
    ]


def build_transcode_args(ffmpeg_path: str, input_path: PathLike, output_path: PathLike) -> List[str]:
    return [
        ffmpeg_path,
        "-i", str(input_path),
        # Video settings
        "-c:v", "libx264",
        "-pix_fmt", "yuv420p",
        "-preset", VIDEO_PRESET,
        "-crf", VIDEO_CRF,
        "-vf", f"scale='min({MAX_WIDTH},iw)':-2",
        # Audio settings
        "-c:a", "aac",
        "-ac", AUDIO_CHANNELS,
        "-b:a", AUDIO_BITRATE,
        # Enable progressive playback
        "-movflags", "+faststart",
        "-y", str(output_path),
    ]


class TranscodeService:
    """Runs the two FFmpeg passes of a job against the same staged input"""

    def __init__(self, ffmpeg_path: str, runner: Optional[ProcessRunner] = None):
        self.ffmpeg_path = ffmpeg_path
        self.runner = runner or SubprocessRunner()

    def extract_thumbnail(self, input_path: PathLike, output_path: PathLike) -> bool:
        """
        Best-effort still frame extraction

        Returns:
            bool: whether the thumbnail file exists afterwards
        """
        logger.info("-> Extracting thumbnail...")
        args = build_thumbnail_args(self.ffmpeg_path, input_path, output_path)
        try:
            code = self.runner.run(args)
            if code != 0:
                logger.warning(f"Thumbnail extraction exited with code {code}; continuing without it")
        except OSError as e:
            logger.warning(f"Thumbnail extraction could not start: {e}; continuing without it")

        return Path(output_path).is_file()

    def transcode(self, input_path: PathLike, output_path: PathLike) -> None:
        """
        Re-encode to H.264/AAC MP4

        Raises:
            TranscodeFailed: non-zero exit, start failure, or no output file
        """
        logger.info("-> Transcoding to target format...")
        args = build_transcode_args(self.ffmpeg_path, input_path, output_path)
        try:
            code = self.runner.run(args)
        except OSError as e:
            raise TranscodeFailed(None, f"FFmpeg failed to start: {e}") from e

        if code != 0:
            raise TranscodeFailed(code)
        if not Path(output_path).is_file():
            raise TranscodeFailed(code, "FFmpeg exited 0 but produced no output file")
