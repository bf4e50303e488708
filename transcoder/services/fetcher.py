# Asset fetcher - streams the raw source object from storage into the staging area

import logging
from pathlib import Path
from typing import Union

import urllib3

from transcoder.core.errors import TransferError
from transcoder.core.s3_client import StorageClient

logger = logging.getLogger(__name__)

CHUNK_SIZE = 8 * 1024 * 1024


class AssetFetcher:
    """Downloads a source object to disk without buffering it in memory"""

    def __init__(self, storage: StorageClient, chunk_size: int = CHUNK_SIZE):
        self.storage = storage
        self.chunk_size = chunk_size

    def fetch(self, source_key: str, dest_path: Union[str, Path]) -> None:
        """
        Stream object source_key into dest_path

        Returns only after the file is fully written, flushed and closed.

        Raises:
            NotFound: object missing
            TransferError: stream, disk or length-mismatch failure
        """
        logger.info(f"-> Downloading {source_key} from storage...")
        response = self.storage.open_object(source_key)
        try:
            expected = self._content_length(response)
            written = 0
            with open(dest_path, "wb") as f:
                while True:
                    chunk = response.read(self.chunk_size)
                    if not chunk:
                        break
                    f.write(chunk)
                    written += len(chunk)
                f.flush()
        except (urllib3.exceptions.HTTPError, OSError) as e:
            raise TransferError(f"Download of '{source_key}' failed: {e}") from e
        finally:
            response.close()
            response.release_conn()

        if expected is not None and written != expected:
            raise TransferError(
                f"Download of '{source_key}' truncated: got {written} of {expected} bytes"
            )
        logger.info(f"-> Downloaded {written} bytes to {dest_path}")

    @staticmethod
    def _content_length(response):
        headers = getattr(response, "headers", None) or {}
        # Decoded bodies do not match the advertised length
        if headers.get("Content-Encoding"):
            return None
        value = headers.get("Content-Length")
        try:
            return int(value) if value is not None else None
        except ValueError:
            return None
