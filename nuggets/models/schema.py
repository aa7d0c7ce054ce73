import enum
from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, Index, Integer, String, Text

from nuggets.core.db import Base


class TagStatus(str, enum.Enum):
    ACTIVE = "active"
    PENDING = "pending"
    DEPRECATED = "deprecated"


class Tag(Base):
    """Persistent tag identity keyed by its case-folded canonical name."""

    __tablename__ = "tags"

    id = Column(Integer, primary_key=True)
    # Exact user-entered text, kept for display
    raw_name = Column(String(200), nullable=False)
    canonical_name = Column(String(200), nullable=False, unique=True)
    aliases = Column(JSON, default=list, nullable=False)
    usage_count = Column(Integer, default=0, nullable=False)
    # Legacy discriminator; new rows are always "tag"
    type = Column(String(20), default="tag", nullable=False, index=True)
    status = Column(String(20), default=TagStatus.ACTIVE.value, nullable=False)
    is_official = Column(Boolean, default=False, nullable=False, index=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("idx_tag_status_type", "status", "type"),
        Index("idx_tag_status_canonical", "status", "canonical_name"),
    )

    @property
    def name(self) -> str:
        """Legacy alias for ``raw_name``."""
        return self.raw_name


class Article(Base):
    """Stored nugget document.

    Media fields are kept as JSON in the shapes the normalization pipeline
    emits, including the legacy ``media``/``images`` fields older rows still carry.
    """

    __tablename__ = "articles"

    id = Column(Integer, primary_key=True)
    title = Column(String(500), nullable=True)
    content = Column(Text, nullable=True)
    excerpt = Column(String(200), nullable=True)
    read_time = Column(Integer, default=1, nullable=False)
    visibility = Column(String(20), default="public", nullable=False, index=True)
    source_type = Column(String(20), nullable=True)

    tags = Column(JSON, default=list, nullable=False)
    images = Column(JSON, default=list, nullable=False)
    media_ids = Column(JSON, default=list, nullable=False)
    documents = Column(JSON, default=list, nullable=False)
    media = Column(JSON, nullable=True)
    primary_media = Column(JSON, nullable=True)
    supporting_media = Column(JSON, default=list, nullable=False)
    external_links = Column(JSON, default=list, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_snapshot(self) -> dict:
        """Return the JSON-shaped document used by the extraction helpers."""
        return {
            "id": str(self.id),
            "title": self.title,
            "content": self.content,
            "tags": list(self.tags or []),
            "images": list(self.images or []),
            "media": self.media,
            "primaryMedia": self.primary_media,
            "supportingMedia": list(self.supporting_media or []),
            "externalLinks": list(self.external_links or []),
        }
