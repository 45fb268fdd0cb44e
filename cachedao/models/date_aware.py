"""Created/updated timestamps for models.

The SQL backend fills both columns server-side on insert and `updated` on
every update. Values come back from the store as "YYYY-MM-DD HH:MM:SS"
strings (or datetimes, depending on the driver).
"""

from datetime import datetime
from typing import Any, ClassVar

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a stored timestamp into a datetime, or None if unset/unparseable."""
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.strptime(str(value)[:19], TIMESTAMP_FORMAT)
    except ValueError:
        return None


class DateAwareModel:
    """Mixin for models tracking creation and last modification time.

    Must come before `Model` in the bases:

        class Post(DateAwareModel, Model):
            fields = ("id", "title")
    """

    fields: ClassVar[tuple[str, ...]] = ("created", "updated")

    def get_created(self) -> datetime | None:
        return parse_timestamp(self.get("created", None))  # type: ignore[attr-defined]

    def get_updated(self) -> datetime | None:
        return parse_timestamp(self.get("updated", None))  # type: ignore[attr-defined]
