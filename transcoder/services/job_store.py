# Record store access - load a job from the videos table and persist status transitions

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from transcoder.core.errors import NotFound, PersistenceError
from transcoder.models import Job, JobResult, JobStatus, Video

logger = logging.getLogger(__name__)


class VideoRepository:
    """Minimal read/update interface over the videos table"""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def load_job(self, job_id: str) -> Job:
        """
        Raises:
            NotFound: no row with this id
            PersistenceError: the query itself failed
        """
        db = self.session_factory()
        try:
            video = db.query(Video).filter(Video.id == job_id).first()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load video {job_id}: {e}") from e
        finally:
            db.close()

        if not video:
            raise NotFound(f"Could not find video {job_id} in database")

        try:
            status = JobStatus(video.transcode_status) if video.transcode_status else JobStatus.QUEUED
        except ValueError:
            raise PersistenceError(f"Video {job_id} has unknown transcode_status {video.transcode_status!r}")

        return Job(id=video.id, source_ref=video.video_url or "", status=status)

    def update_job(self, job_id: str, result: JobResult) -> None:
        """
        Persist a status transition

        processing clears both locators, completed writes both (a missing
        thumbnail is stored as NULL), failed leaves them as processing left them.

        Raises:
            NotFound: row disappeared
            PersistenceError: write failed
        """
        db = self.session_factory()
        try:
            video = db.query(Video).filter(Video.id == job_id).first()
            if not video:
                raise NotFound(f"Could not find video {job_id} in database")

            video.transcode_status = result.status.value
            if result.status in (JobStatus.PROCESSING, JobStatus.COMPLETED):
                # A new attempt starts clean; a completed one records exactly what it published
                video.video_url_h264 = result.video_url
                video.thumbnail_url = result.thumbnail_url
            db.commit()
            logger.debug(f"Video {job_id} -> {result.status.value}")
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError(f"Failed to update video {job_id}: {e}") from e
        finally:
            db.close()
