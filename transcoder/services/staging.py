# Staging area - per-job temporary directory for input, transcoded output and thumbnail

import logging
import re
import shutil
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, Union

logger = logging.getLogger(__name__)

STAGING_PREFIX = "transcode-"
INPUT_FILENAME = "input_video"
OUTPUT_FILENAME = "output.mp4"
THUMBNAIL_FILENAME = "thumb.jpg"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]+")


@dataclass(frozen=True)
class StagingArea:
    path: Path

    @property
    def input_path(self) -> Path:
        return self.path / INPUT_FILENAME

    @property
    def output_path(self) -> Path:
        return self.path / OUTPUT_FILENAME

    @property
    def thumbnail_path(self) -> Path:
        return self.path / THUMBNAIL_FILENAME


class StagingAreaManager:
    """Allocates an exclusively-owned directory per job and removes it on the way out"""

    def __init__(self, root: Optional[Union[str, Path]] = None):
        self.root = Path(root) if root else Path(tempfile.gettempdir())

    def acquire(self, job_id: str) -> Path:
        """Create a uniquely named directory; safe across concurrent jobs on a shared filesystem"""
        safe_id = _UNSAFE_CHARS.sub("_", job_id)[:64]
        path = Path(tempfile.mkdtemp(prefix=f"{STAGING_PREFIX}{safe_id}-", dir=self.root))
        logger.debug(f"Acquired staging area {path}")
        return path

    def release(self, path: Union[str, Path]) -> None:
        """Recursively remove a staging directory. Idempotent; never raises."""
        path = Path(path)
        if not path.exists():
            return
        try:
            shutil.rmtree(path)
            logger.debug(f"Released staging area {path}")
        except OSError as e:
            logger.warning(f"Failed to remove staging area {path}: {e}")

    @contextmanager
    def staged(self, job_id: str) -> Iterator[StagingArea]:
        path = self.acquire(job_id)
        try:
            yield StagingArea(path)
        finally:
            self.release(path)
