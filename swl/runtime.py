from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from threading import Lock


NOTIFY_LABEL = "com.df.notify"
LABEL_PREFIX = "com.df."


# Compared and hashed by identity; labels is a plain dict.
@dataclass(frozen=True, eq=False)
class SwarmService:
    name: str
    labels: dict[str, str] = field(default_factory=dict)
    created_at: datetime | None = None

    @property
    def eligible(self) -> bool:
        return NOTIFY_LABEL in self.labels


class Membership(enum.Enum):
    ABSENT = "absent"
    KNOWN = "known"


class TrackedState:
    """In-memory record of eligible services already announced, plus the creation watermark.

    A name moves ABSENT -> KNOWN when it is first detected as new and
    KNOWN -> ABSENT only after its removal notification was delivered.
    The state is owned by a single listener; the lock lets the status API read it
    from another thread.
    """

    def __init__(self) -> None:
        self.lock = Lock()
        self._known: dict[str, Membership] = {}
        self._watermark: datetime | None = None

    @property
    def watermark(self) -> datetime | None:
        with self.lock:
            return self._watermark

    def advance_watermark(self, created_at: datetime) -> None:
        """Raise the watermark; older timestamps are ignored."""
        with self.lock:
            if self._watermark is None or created_at > self._watermark:
                self._watermark = created_at

    def state_of(self, name: str) -> Membership:
        with self.lock:
            return self._known.get(name, Membership.ABSENT)

    def enter(self, name: str) -> None:
        with self.lock:
            self._known[name] = Membership.KNOWN

    def leave(self, name: str) -> None:
        with self.lock:
            self._known.pop(name, None)

    def known_names(self) -> list[str]:
        with self.lock:
            return sorted(n for n, m in self._known.items() if m is Membership.KNOWN)
