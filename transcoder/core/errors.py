# Error taxonomy for the transcode job lifecycle

from typing import Optional


class TranscoderError(Exception):
    """Base class for every failure the job surfaces to its caller"""


class NotFound(TranscoderError):
    """Job record or source object does not exist"""


class TransferError(TranscoderError):
    """Source download failed or was truncated"""


class TranscodeFailed(TranscoderError):
    """Mandatory FFmpeg transcode did not produce an output"""

    def __init__(self, exit_code: Optional[int], message: Optional[str] = None):
        self.exit_code = exit_code
        if message is None:
            if exit_code is None:
                message = "FFmpeg failed to start"
            else:
                message = f"FFmpeg failed with exit code {exit_code}"
        super().__init__(message)


class UploadFailed(TranscoderError):
    """Mandatory artifact upload failed"""


class PersistenceError(TranscoderError):
    """Record store read or write failed"""


class InvalidJobState(TranscoderError):
    """Job is not in a state this run may transition from"""
