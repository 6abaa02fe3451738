"""Status enums for live sessions, queue entries and meetings."""

from enum import Enum


class LiveSessionStatus(str, Enum):
    """Live session lifecycle states.

    ACTIVE -> ENDED <- PAUSED

    - ACTIVE: Reviewer went live; applicants may join while ends_at is in the future.
    - PAUSED: Stored state with admission closed; no operation sets it, it can only be ended.
    - ENDED: Reviewer ended the session (or it was ended after expiry). Terminal.
    """

    ACTIVE = "active"
    PAUSED = "paused"
    ENDED = "ended"

    def __str__(self) -> str:
        return self.value


class QueueEntryStatus(str, Enum):
    """Queue entry states.

    WAITING → YOUR_TURN → JOINED → COMPLETED
       ↓          ↓   ↘
    SKIPPED    SKIPPED  COMPLETED

    Terminal states: SKIPPED, COMPLETED
    """

    WAITING = "waiting"
    YOUR_TURN = "your_turn"
    JOINED = "joined"
    SKIPPED = "skipped"
    COMPLETED = "completed"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def active_states(cls) -> list["QueueEntryStatus"]:
        """States that hold one unit of session capacity."""
        return [
            QueueEntryStatus.WAITING,
            QueueEntryStatus.YOUR_TURN,
            QueueEntryStatus.JOINED,
        ]


class MeetingStatus(str, Enum):
    REQUESTED = "requested"
    ACCEPTED = "accepted"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    def __str__(self) -> str:
        return self.value


class RoastType(str, Enum):
    APPLICATION = "application"
    PITCH = "pitch"
    IDEA = "idea"

    def __str__(self) -> str:
        return self.value


__all__ = ["LiveSessionStatus", "MeetingStatus", "QueueEntryStatus", "RoastType"]
