"""Datetime helpers.

Usage:
    from libs.common.datetime_utils import utc_now

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Timezone-aware current UTC time, used for every persisted timestamp."""
    return datetime.now(timezone.utc)
