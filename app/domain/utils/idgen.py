from ulid import ULID


def new_ulid(prefix: str | None = None) -> str:
    value = str(ULID()).lower()
    return f"{prefix}{value}" if prefix else value


def new_live_session_id() -> str:
    return new_ulid("ls_")


def new_queue_entry_id() -> str:
    return new_ulid("qe_")


def new_meeting_id() -> str:
    return new_ulid("mt_")
