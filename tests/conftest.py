from __future__ import annotations

import io
from pathlib import Path
from typing import Any, Sequence

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from transcoder.core.config import Settings
from transcoder.core.database import create_session_factory, create_tables
from transcoder.core.errors import NotFound, UploadFailed
from transcoder.core.s3_client import build_public_url
from transcoder.models import Video
from transcoder.services.fetcher import AssetFetcher
from transcoder.services.job_store import VideoRepository
from transcoder.services.publisher import ArtifactPublisher
from transcoder.services.staging import StagingAreaManager
from transcoder.services.transcode_service import TranscodeService
from transcoder.worker import TranscodeWorker

PUBLIC_DOMAIN = "https://cdn.example.com"


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "database_url": "sqlite://",
        "s3_endpoint": "http://minio.local:9000",
        "s3_access_key": "access",
        "s3_secret_key": "secret",
        "s3_bucket": "media",
        "s3_region": "us-east-1",
        "s3_public_domain": None,
        "ffmpeg_path": None,
        "staging_root": None,
        "record_write_attempts": 3,
        "record_write_backoff": 0,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class FakeResponse:
    """Stands in for the urllib3 response minio.get_object returns"""

    def __init__(self, data: bytes, *, content_length: int | None = None, fail_after: int | None = None):
        self._body = io.BytesIO(data)
        self._fail_after = fail_after
        self._read = 0
        length = len(data) if content_length is None else content_length
        self.headers = {"Content-Length": str(length)}
        self.closed = False
        self.released = False

    def read(self, amt: int | None = None) -> bytes:
        if self._fail_after is not None and self._read >= self._fail_after:
            raise ConnectionResetError("connection reset by peer")
        chunk = self._body.read(amt)
        self._read += len(chunk)
        return chunk

    def close(self) -> None:
        self.closed = True

    def release_conn(self) -> None:
        self.released = True


class FakeStorage:
    """In-memory object store with the StorageClient surface the pipeline uses"""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.objects: dict[str, bytes] = {}
        self.uploads: dict[str, tuple[bytes, str]] = {}
        self.fail_uploads: set[str] = set()
        self.responses: list[FakeResponse] = []

    def open_object(self, object_name: str) -> FakeResponse:
        if object_name not in self.objects:
            raise NotFound(f"Object '{object_name}' not found")
        response = FakeResponse(self.objects[object_name])
        self.responses.append(response)
        return response

    def put_file(self, object_name: str, file_path: str, content_type: str) -> str:
        if object_name in self.fail_uploads:
            raise UploadFailed(f"Failed to upload file '{object_name}': simulated")
        self.uploads[object_name] = (Path(file_path).read_bytes(), content_type)
        return object_name

    def public_url(self, object_name: str) -> str:
        return build_public_url(self.settings, object_name)


class FakeRunner:
    """ProcessRunner double: returns scripted exit codes and writes stub outputs on success"""

    def __init__(self, *, thumbnail_code: int = 0, transcode_code: int = 0,
                 thumbnail_error: OSError | None = None, transcode_error: OSError | None = None,
                 write_transcode_output: bool = True) -> None:
        self.thumbnail_code = thumbnail_code
        self.transcode_code = transcode_code
        self.thumbnail_error = thumbnail_error
        self.transcode_error = transcode_error
        self.write_transcode_output = write_transcode_output
        self.calls: list[list[str]] = []

    def run(self, args: Sequence[str]) -> int:
        args = list(args)
        self.calls.append(args)
        output = Path(args[-1])
        if "-vframes" in args:
            if self.thumbnail_error:
                raise self.thumbnail_error
            if self.thumbnail_code == 0:
                output.write_bytes(b"jpeg")
            return self.thumbnail_code
        if self.transcode_error:
            raise self.transcode_error
        if self.transcode_code == 0 and self.write_transcode_output:
            output.write_bytes(b"mp4")
        return self.transcode_code


@pytest.fixture
def settings() -> Settings:
    return make_settings(s3_public_domain=PUBLIC_DOMAIN)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def repository(session_factory) -> VideoRepository:
    return VideoRepository(session_factory)


@pytest.fixture
def add_video(session_factory):
    def _add(video_id: str, video_url: str | None, status: str | None = "queued") -> None:
        db = session_factory()
        try:
            db.add(Video(id=video_id, video_url=video_url, transcode_status=status))
            db.commit()
        finally:
            db.close()

    return _add


@pytest.fixture
def get_video(session_factory):
    def _get(video_id: str) -> Video | None:
        db = session_factory()
        try:
            return db.query(Video).filter(Video.id == video_id).first()
        finally:
            db.close()

    return _get


@pytest.fixture
def staging_root(tmp_path: Path) -> Path:
    root = tmp_path / "staging"
    root.mkdir()
    return root


@pytest.fixture
def storage(settings) -> FakeStorage:
    return FakeStorage(settings)


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def make_worker(settings, repository, storage, staging_root):
    def _make(runner: FakeRunner, records: Any = None) -> TranscodeWorker:
        return TranscodeWorker(
            settings=settings,
            records=records or repository,
            staging=StagingAreaManager(staging_root),
            fetcher=AssetFetcher(storage),
            transcoder=TranscodeService("ffmpeg", runner=runner),
            publisher=ArtifactPublisher(storage),
            sleep=lambda _: None,
        )

    return _make
