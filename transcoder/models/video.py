# Video model - one transcode request (source locator, transcode status, derived URLs)

from sqlalchemy import Column, String, DateTime, Text
from sqlalchemy.sql import func

from transcoder.core.database import Base


class Video(Base):
    """Row in the videos table; the transcode job reads and writes a subset of columns"""

    __tablename__ = "videos"

    id = Column(String(64), primary_key=True, index=True)

    # Source asset: storage key or public URL of the raw upload
    video_url = Column(Text, nullable=True)

    # Job status: queued, processing, completed, failed (NULL means never queued explicitly)
    transcode_status = Column(String(32), nullable=True, index=True)

    # Derived artifacts (set when completed)
    video_url_h264 = Column(Text, nullable=True)
    thumbnail_url = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Video(id={self.id}, transcode_status={self.transcode_status})>"
