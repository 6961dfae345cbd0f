"""Recent-error ring buffer exposed through the diagnostics endpoints."""

from collections import deque
from datetime import datetime, timezone
from typing import Any


class RecentErrors:
    """Bounded in-process record of the latest failures."""

    def __init__(self, limit: int = 50) -> None:
        self._entries: deque[dict[str, Any]] = deque(maxlen=limit)

    def record(
        self,
        source: str,
        error: BaseException | str,
        **context: Any,
    ) -> None:
        """Remember a failure with where it happened."""
        if isinstance(error, BaseException):
            error_type = type(error).__name__
            message = str(error)
        else:
            error_type = "Error"
            message = error

        self._entries.append(
            {
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "source": source,
                "type": error_type,
                "message": message,
                "context": context,
            }
        )

    def latest(self, count: int = 10) -> list[dict[str, Any]]:
        """Most recent errors, newest first."""
        return list(reversed(self._entries))[:count]

    def __len__(self) -> int:
        return len(self._entries)
