"""Queue entry state machine for managing state transitions."""

from app.schemas.live_queue_state import QueueEntryStatus


class QueueEntryStateMachine:
    """State machine for managing queue entry transitions.

    State flow with triggers:
    - WAITING (applicant joined the queue) -> YOUR_TURN (reviewer advanced the queue) | SKIPPED
    - YOUR_TURN -> JOINED (applicant confirmed) | COMPLETED | SKIPPED (manual skip or turn timeout)
    - JOINED -> COMPLETED
    - SKIPPED/COMPLETED are terminal states

    YOUR_TURN -> COMPLETED without a JOINED step is allowed: reviewers may mark a
    conversation complete without the applicant confirming the join.

    Every transition into a terminal state frees one unit of session capacity.
    """

    TRANSITIONS: dict[QueueEntryStatus, set[QueueEntryStatus]] = {
        QueueEntryStatus.WAITING: {
            QueueEntryStatus.YOUR_TURN,
            QueueEntryStatus.SKIPPED,
        },
        QueueEntryStatus.YOUR_TURN: {
            QueueEntryStatus.JOINED,
            QueueEntryStatus.COMPLETED,
            QueueEntryStatus.SKIPPED,
        },
        QueueEntryStatus.JOINED: {QueueEntryStatus.COMPLETED},
        QueueEntryStatus.SKIPPED: set(),
        QueueEntryStatus.COMPLETED: set(),
    }

    TERMINAL_STATES: set[QueueEntryStatus] = {QueueEntryStatus.SKIPPED, QueueEntryStatus.COMPLETED}

    @classmethod
    def can_transition(cls, current: QueueEntryStatus, new: QueueEntryStatus) -> bool:
        return new in cls.TRANSITIONS.get(current, set())

    @classmethod
    def is_terminal(cls, state: QueueEntryStatus) -> bool:
        return state in cls.TERMINAL_STATES

    @classmethod
    def releases_capacity(cls, current: QueueEntryStatus, new: QueueEntryStatus) -> bool:
        """True if moving `current` -> `new` takes the entry out of the capacity count."""
        return cls.can_transition(current, new) and cls.is_terminal(new)

    @classmethod
    def get_valid_transitions(cls, state: QueueEntryStatus) -> set[QueueEntryStatus]:
        return cls.TRANSITIONS.get(state, set())

    @classmethod
    def get_valid_sources(cls, target: QueueEntryStatus) -> set[QueueEntryStatus]:
        """Get all states that can transition to the target state.

        Args:
            target: Target queue entry state

        Returns:
            Set of states that can transition to the target
        """
        return {state for state, targets in cls.TRANSITIONS.items() if target in targets}
