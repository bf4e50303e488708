# Artifact publisher - concurrent upload of the transcoded video and thumbnail, public URL derivation

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Optional

from transcoder.core.errors import UploadFailed
from transcoder.core.s3_client import StorageClient
from transcoder.services.artifacts import (
    THUMBNAIL_CONTENT_TYPE,
    VIDEO_CONTENT_TYPE,
    derive_artifact_keys,
)
from transcoder.services.staging import StagingArea

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PublishedArtifacts:
    video_url: str
    thumbnail_url: Optional[str] = None


class ArtifactPublisher:
    """Uploads derived artifacts next to the source object and returns their public URLs"""

    def __init__(self, storage: StorageClient):
        self.storage = storage

    def publish(self, paths: StagingArea, base_key: str) -> PublishedArtifacts:
        """
        Upload the video (mandatory) and the thumbnail (if present) concurrently

        Raises:
            UploadFailed: the video upload failed. Raised only after both uploads settle.
        """
        keys = derive_artifact_keys(base_key)
        has_thumbnail = paths.thumbnail_path.is_file()
        logger.info(f"-> Uploading {keys.video}" + (f" & {keys.thumbnail}" if has_thumbnail else "") + "...")

        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="upload") as executor:
            video_future = executor.submit(
                self.storage.put_file, keys.video, paths.output_path, VIDEO_CONTENT_TYPE
            )
            thumb_future = None
            if has_thumbnail:
                thumb_future = executor.submit(
                    self.storage.put_file, keys.thumbnail, paths.thumbnail_path, THUMBNAIL_CONTENT_TYPE
                )
            wait([f for f in (video_future, thumb_future) if f is not None])

        thumbnail_url = None
        if thumb_future is not None:
            thumb_error = thumb_future.exception()
            if thumb_error is None:
                thumbnail_url = self.storage.public_url(keys.thumbnail)
            else:
                logger.warning(f"Thumbnail upload failed, continuing without it: {thumb_error}")
        else:
            logger.info("No thumbnail produced; skipping thumbnail upload")

        video_error = video_future.exception()
        if video_error is not None:
            if isinstance(video_error, UploadFailed):
                raise video_error
            raise UploadFailed(f"Failed to upload '{keys.video}': {video_error}") from video_error

        return PublishedArtifacts(
            video_url=self.storage.public_url(keys.video),
            thumbnail_url=thumbnail_url,
        )
