"""Names of the background job queues."""

import enum


class Queue(str, enum.Enum):
    DEFAULT = "default"
    NOTIFICATIONS = "notifications"

    @classmethod
    def short(cls) -> list["Queue"]:
        """Queues for jobs that finish quickly."""
        return [cls.DEFAULT, cls.NOTIFICATIONS]

    @classmethod
    def long(cls) -> list["Queue"]:
        """Queues for long-running jobs."""
        return []
