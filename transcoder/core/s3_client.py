# MinIO client initialization and S3-compatible storage operations wrapper

import logging
from typing import Optional
from urllib.parse import urlparse

import urllib3
from minio import Minio
from minio.error import S3Error

from .config import Settings
from .errors import NotFound, TransferError, UploadFailed

logger = logging.getLogger(__name__)

# S3 error codes that mean the object (or its bucket) is absent
NOT_FOUND_CODES = {"NoSuchKey", "NoSuchBucket", "NoSuchObject", "ResourceNotFound"}


def parse_endpoint(url: str) -> tuple[str, bool]:
    """
    Split an http(s) endpoint URL such as https://abc.r2.cloudflarestorage.com

    Returns: (endpoint_without_scheme, secure)
    """
    raw = (url or "").strip()
    if not raw:
        raise ValueError("Empty endpoint")

    parsed = urlparse(raw)
    if parsed.scheme.lower() not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"Invalid endpoint URL: {raw}")
    secure = parsed.scheme.lower() == "https"
    return parsed.netloc, secure


def build_public_url(settings: Settings, key: str) -> str:
    """Public URL for an object key: public domain if configured, else endpoint/bucket"""
    if settings.s3_public_domain:
        return f"{settings.s3_public_domain}/{key}"
    return f"{settings.s3_endpoint}/{settings.s3_bucket}/{key}"


class StorageClient:
    """S3-compatible storage client wrapper bound to the job's bucket"""

    def __init__(self, settings: Settings, client: Optional[Minio] = None):
        self.settings = settings
        self.bucket_name = settings.s3_bucket
        self.client = client or self._create_client(settings)

    @staticmethod
    def _create_client(settings: Settings) -> Minio:
        endpoint, secure = parse_endpoint(settings.s3_endpoint)

        # Tune underlying HTTP connection pool.
        # Two uploads share the pool with the download connection.
        http_client = urllib3.PoolManager(
            maxsize=settings.s3_http_pool_maxsize,
            timeout=urllib3.Timeout(
                connect=settings.s3_http_connect_timeout,
                read=settings.s3_http_read_timeout,
            ),
            retries=urllib3.Retry(
                total=settings.s3_http_total_retries,
                backoff_factor=settings.s3_http_backoff_factor,
                status_forcelist=[500, 502, 503, 504],
                allowed_methods={"GET", "PUT", "POST", "HEAD", "DELETE"},
            ),
        )

        return Minio(
            endpoint=endpoint,
            access_key=settings.s3_access_key,
            secret_key=settings.s3_secret_key,
            secure=secure,
            region=settings.s3_region,
            http_client=http_client,
        )

    def open_object(self, object_name: str):
        """
        Open a streaming GET for an object.

        Caller must close() and release_conn() the returned response.

        Raises:
            NotFound: object or bucket does not exist
            TransferError: any other storage or connection failure
        """
        try:
            return self.client.get_object(
                bucket_name=self.bucket_name,
                object_name=object_name
            )
        except S3Error as e:
            if e.code in NOT_FOUND_CODES:
                raise NotFound(f"Object '{object_name}' not found in bucket '{self.bucket_name}'") from e
            raise TransferError(f"Failed to open '{object_name}': {e}") from e
        except (urllib3.exceptions.HTTPError, OSError) as e:
            raise TransferError(f"Failed to open '{object_name}': {e}") from e

    def put_file(self, object_name: str, file_path: str, content_type: str) -> str:
        """
        Upload a local file, streaming it from disk

        Returns:
            str: Object name/key
        """
        try:
            self.client.fput_object(
                bucket_name=self.bucket_name,
                object_name=object_name,
                file_path=str(file_path),
                content_type=content_type
            )
            return object_name
        except (S3Error, urllib3.exceptions.HTTPError, OSError) as e:
            raise UploadFailed(f"Failed to upload file '{object_name}': {e}") from e

    def public_url(self, object_name: str) -> str:
        return build_public_url(self.settings, object_name)
