# Artifact naming - source key resolution and deterministic derived keys

import posixpath
from dataclasses import dataclass
from urllib.parse import unquote, urlparse

from transcoder.core.config import Settings
from transcoder.core.errors import NotFound

VIDEO_SUFFIX = "_h264.mp4"
THUMBNAIL_SUFFIX = "_thumb.jpg"
VIDEO_CONTENT_TYPE = "video/mp4"
THUMBNAIL_CONTENT_TYPE = "image/jpeg"


@dataclass(frozen=True)
class ArtifactKeys:
    video: str
    thumbnail: str


def strip_extension(key: str) -> str:
    base, _ = posixpath.splitext(key)
    return base


def derive_artifact_keys(source_key: str) -> ArtifactKeys:
    """Same source key always yields the same keys, so re-runs overwrite"""
    base = strip_extension(source_key)
    return ArtifactKeys(video=f"{base}{VIDEO_SUFFIX}", thumbnail=f"{base}{THUMBNAIL_SUFFIX}")


def resolve_source_key(source_ref: str, settings: Settings) -> str:
    """
    Turn a record's source locator into a bucket key

    Accepts a bare key ("raw/abc.mov"), a public URL under S3_PUBLIC_DOMAIN,
    an endpoint/bucket URL, or any other URL whose path names the key.
    """
    ref = (source_ref or "").strip()
    if not ref:
        raise NotFound("Job has no source reference")

    if "://" not in ref:
        key = ref
    else:
        prefixes = [f"{settings.s3_endpoint}/{settings.s3_bucket}/"]
        if settings.s3_public_domain:
            prefixes.insert(0, f"{settings.s3_public_domain}/")

        for prefix in prefixes:
            if ref.startswith(prefix):
                key = unquote(ref[len(prefix):].split("?", 1)[0])
                break
        else:
            path = unquote(urlparse(ref).path).lstrip("/")
            bucket_prefix = f"{settings.s3_bucket}/"
            key = path[len(bucket_prefix):] if path.startswith(bucket_prefix) else path

    key = key.lstrip("/")
    if not key:
        raise NotFound(f"Could not extract source key from {source_ref!r}")
    return key
