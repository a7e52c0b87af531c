"""SQLAlchemy declarative base and shared column helpers."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Text, text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models in intake_db."""

    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RowMixin:
    """UUID primary key, creation timestamp, and the idempotency key."""

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    # Client-generated per submission; a replayed write finds the existing row
    submission_id: Mapped[str | None] = mapped_column(Text, nullable=True, unique=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("now()"),
    )
