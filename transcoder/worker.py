# Job state controller - drives one video through processing -> completed | failed

import logging
import time
from typing import Callable, Optional

from transcoder.core.config import Settings
from transcoder.core.database import create_db_engine, create_session_factory
from transcoder.core.errors import InvalidJobState, PersistenceError
from transcoder.core.s3_client import StorageClient
from transcoder.models import JobResult, JobStatus
from transcoder.services.artifacts import resolve_source_key
from transcoder.services.fetcher import AssetFetcher
from transcoder.services.job_store import VideoRepository
from transcoder.services.publisher import ArtifactPublisher
from transcoder.services.staging import StagingAreaManager
from transcoder.services.transcode_service import TranscodeService, find_ffmpeg

logger = logging.getLogger(__name__)


class TranscodeWorker:
    """
    Runs exactly one job: load, mark processing, fetch, transcode, publish, record.

    The record store's status is the durable outcome; process_video raising is
    the caller's failure signal. The staging area exists only while the job is
    processing and is removed on every exit path.
    """

    def __init__(
        self,
        settings: Settings,
        records: VideoRepository,
        staging: StagingAreaManager,
        fetcher: AssetFetcher,
        transcoder: TranscodeService,
        publisher: ArtifactPublisher,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.settings = settings
        self.records = records
        self.staging = staging
        self.fetcher = fetcher
        self.transcoder = transcoder
        self.publisher = publisher
        self._sleep = sleep

    def process_video(self, video_id: str, force: bool = False) -> JobResult:
        """
        Args:
            video_id: record id of the job
            force: re-run a job that is not queued (re-publishes to the same keys)

        Raises:
            NotFound: job or source missing; nothing written when the job is missing
            InvalidJobState: job not queued and force not set; nothing written
            TransferError, TranscodeFailed, UploadFailed, PersistenceError: after
                the job was marked failed (best effort)
        """
        logger.info(f"--- [{video_id}] START TRANSCODE JOB ---")

        job = self.records.load_job(video_id)
        if job.status is not JobStatus.QUEUED and not force:
            raise InvalidJobState(
                f"Video {video_id} is {job.status.value}; only queued jobs run without --force"
            )
        if job.status is not JobStatus.QUEUED:
            logger.warning(f"[{video_id}] Re-running job in state {job.status.value}")

        source_key = resolve_source_key(job.source_ref, self.settings)

        try:
            self.records.update_job(video_id, JobResult(status=JobStatus.PROCESSING))

            with self.staging.staged(video_id) as area:
                self.fetcher.fetch(source_key, area.input_path)

                self.transcoder.extract_thumbnail(area.input_path, area.thumbnail_path)
                self.transcoder.transcode(area.input_path, area.output_path)

                published = self.publisher.publish(area, source_key)

                result = JobResult(
                    status=JobStatus.COMPLETED,
                    video_url=published.video_url,
                    thumbnail_url=published.thumbnail_url,
                )
                logger.info("-> Updating video record...")
                self._write_completed(video_id, result)

        except Exception as e:
            logger.error(f"--- [{video_id}] FATAL ERROR: {e} ---")
            self._mark_failed(video_id)
            raise

        logger.info(f"--- [{video_id}] SUCCESS ---")
        return result

    def _write_completed(self, video_id: str, result: JobResult) -> None:
        attempts = self.settings.record_write_attempts
        for attempt in range(1, attempts + 1):
            try:
                self.records.update_job(video_id, result)
                return
            except PersistenceError as e:
                if attempt == attempts:
                    raise
                logger.warning(f"Final record write failed (attempt {attempt}/{attempts}): {e}")
                self._sleep(self.settings.record_write_backoff * attempt)

    def _mark_failed(self, video_id: str) -> None:
        try:
            self.records.update_job(video_id, JobResult(status=JobStatus.FAILED))
        except Exception as db_error:
            logger.error(f"Failed to update job status: {db_error}")


def build_worker(settings: Settings, ffmpeg_path: Optional[str] = None) -> TranscodeWorker:
    """Wire the worker against the real record store, storage and FFmpeg"""
    engine = create_db_engine(settings)
    storage = StorageClient(settings)
    return TranscodeWorker(
        settings=settings,
        records=VideoRepository(create_session_factory(engine)),
        staging=StagingAreaManager(settings.staging_root),
        fetcher=AssetFetcher(storage),
        transcoder=TranscodeService(ffmpeg_path or find_ffmpeg(settings.ffmpeg_path)),
        publisher=ArtifactPublisher(storage),
    )
