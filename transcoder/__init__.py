"""Single-shot video transcode job."""

__version__ = "0.1.0"
