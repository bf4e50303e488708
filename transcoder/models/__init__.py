# Record store model and job domain types

from .job import Job, JobResult, JobStatus
from .video import Video
