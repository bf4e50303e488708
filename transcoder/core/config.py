# Job settings and environment variable loading (Pydantic BaseSettings)

import re
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_REGION = "us-east-1"
_REGION_PATTERN = re.compile(r"^[a-z0-9-]+$")


def _clean(value):
    """Strip surrounding quotes, whitespace and stray newlines from an env value"""
    if not isinstance(value, str):
        return value
    value = value.strip().strip("'\"").strip()
    return value.replace("\r", "").replace("\n", "")


def _http_url(name: str, value: str) -> str:
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"{name} must be an http(s) URL, got {value!r}")
    return value.rstrip("/")


class Settings(BaseSettings):
    """Settings for one transcode invocation, validated once at startup"""

    # Database Settings (Required - no defaults for credentials)
    database_url: str

    # S3-compatible storage (Required - no defaults for credentials)
    s3_endpoint: str
    s3_access_key: str
    s3_secret_key: str
    s3_bucket: str = Field(min_length=1)
    s3_region: str = Field(default=DEFAULT_REGION)

    # Public base for derived artifact URLs; falls back to endpoint/bucket
    s3_public_domain: Optional[str] = None

    # HTTP pool tuning for the storage client
    s3_http_pool_maxsize: int = Field(default=32, ge=1)
    s3_http_connect_timeout: float = Field(default=5, gt=0)
    s3_http_read_timeout: float = Field(default=60, gt=0)
    s3_http_total_retries: int = Field(default=3, ge=0)
    s3_http_backoff_factor: float = Field(default=0.2, ge=0)

    # Transcoding
    ffmpeg_path: Optional[str] = None
    staging_root: Optional[Path] = None

    # Final record write
    record_write_attempts: int = Field(default=3, ge=1)
    record_write_backoff: float = Field(default=0.5, ge=0)

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore", frozen=True)

    @field_validator(
        "database_url",
        "s3_endpoint",
        "s3_access_key",
        "s3_secret_key",
        "s3_bucket",
        "s3_public_domain",
        "ffmpeg_path",
        "staging_root",
        mode="before",
    )
    @classmethod
    def _strip_quotes(cls, value):
        value = _clean(value)
        if value == "":
            return None
        return value

    @field_validator("s3_endpoint")
    @classmethod
    def _validate_endpoint(cls, value: str) -> str:
        return _http_url("S3_ENDPOINT", value)

    @field_validator("s3_public_domain")
    @classmethod
    def _validate_public_domain(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return _http_url("S3_PUBLIC_DOMAIN", value)

    @field_validator("s3_region", mode="before")
    @classmethod
    def _normalize_region(cls, value):
        # Cloudflare R2 advertises "auto"; the SDK needs a concrete region to sign with
        value = _clean(value)
        if not value or value == "auto":
            return DEFAULT_REGION
        if not _REGION_PATTERN.match(value):
            raise ValueError(f"S3_REGION must match [a-z0-9-]+, got {value!r}")
        return value

    @field_validator("staging_root")
    @classmethod
    def _validate_staging_root(cls, value: Optional[Path]) -> Optional[Path]:
        if value is not None and not value.is_dir():
            raise ValueError(f"STAGING_ROOT {value} is not an existing directory")
        return value


def load_settings(**overrides) -> Settings:
    """Read settings from the environment and .env; raises pydantic.ValidationError when invalid"""
    return Settings(**overrides)
