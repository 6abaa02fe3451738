"""Live session state machine for managing state transitions."""

from app.schemas.live_queue_state import LiveSessionStatus


class LiveSessionStateMachine:
    """State machine for managing live session state transitions.

    State flow with triggers:
    - ACTIVE (reviewer went live) -> ENDED (reviewer ended it, or it expired and was ended)
    - PAUSED -> ENDED
    - ENDED is terminal

    No operation pauses or resumes a session. PAUSED is a stored state that
    closes admission; a paused row can only be ended.

    An ACTIVE session whose ends_at has passed is treated as ended for admission
    even before the ENDED flip is written.
    """

    TRANSITIONS: dict[LiveSessionStatus, set[LiveSessionStatus]] = {
        LiveSessionStatus.ACTIVE: {LiveSessionStatus.ENDED},
        LiveSessionStatus.PAUSED: {LiveSessionStatus.ENDED},
        LiveSessionStatus.ENDED: set(),
    }

    TERMINAL_STATES: set[LiveSessionStatus] = {LiveSessionStatus.ENDED}

    @classmethod
    def can_transition(cls, current: LiveSessionStatus, new: LiveSessionStatus) -> bool:
        """Check if state transition is valid.

        Args:
            current: Current session state
            new: Target state to transition to

        Returns:
            True if transition is valid, False otherwise
        """
        return new in cls.TRANSITIONS.get(current, set())

    @classmethod
    def is_terminal(cls, state: LiveSessionStatus) -> bool:
        return state in cls.TERMINAL_STATES

    @classmethod
    def get_valid_sources(cls, target: LiveSessionStatus) -> set[LiveSessionStatus]:
        return {state for state, targets in cls.TRANSITIONS.items() if target in targets}
