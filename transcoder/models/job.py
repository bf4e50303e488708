# Job domain types - lifecycle status, loaded job, typed result written back to the record store

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class JobStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


@dataclass(frozen=True)
class Job:
    id: str
    source_ref: str
    status: JobStatus = JobStatus.QUEUED


@dataclass(frozen=True)
class JobResult:
    """Fields persisted on a status transition. Locators are only written when set."""

    status: JobStatus
    video_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
