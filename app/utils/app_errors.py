"""Application error types shared by the domain layer and API handlers."""

import inspect
from enum import Enum, IntEnum
from uuid import uuid4


class HttpStatusCode(IntEnum):
    """HTTP status codes used by the API boundary."""

    OK = 200
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    CONFLICT = 409
    UNPROCESSABLE_ENTITY = 422
    TOO_MANY_REQUESTS = 429
    INTERNAL_SERVER_ERROR = 500


class AppErrorCode(str, Enum):
    """Error codes surfaced in ApiFailure.errcode."""

    E_INVALID_REQUEST = "E_INVALID_REQUEST"
    E_INVALID_PARAMS = "E_INVALID_PARAMS"
    E_BAD_TOKEN = "E_BAD_TOKEN"
    E_UNAUTHORIZED = "E_UNAUTHORIZED"
    E_INTERNAL_ERROR = "E_INTERNAL_ERROR"

    # Live sessions
    E_SESSION_NOT_FOUND = "E_SESSION_NOT_FOUND"
    E_SESSION_INACTIVE = "E_SESSION_INACTIVE"
    E_ALREADY_LIVE = "E_ALREADY_LIVE"

    # Queue entries
    E_QUEUE_FULL = "E_QUEUE_FULL"
    E_QUEUE_EMPTY = "E_QUEUE_EMPTY"
    E_QUEUE_CHANGED = "E_QUEUE_CHANGED"
    E_ALREADY_QUEUED = "E_ALREADY_QUEUED"
    E_NOT_IN_QUEUE = "E_NOT_IN_QUEUE"
    E_QUEUE_ENTRY_NOT_FOUND = "E_QUEUE_ENTRY_NOT_FOUND"
    E_INVALID_TRANSITION = "E_INVALID_TRANSITION"

    # Integrations
    E_MEETING_CREATION_FAILED = "E_MEETING_CREATION_FAILED"
    E_NOTIFICATION_FAILED = "E_NOTIFICATION_FAILED"

    def __str__(self) -> str:
        return self.value


class AppError(Exception):
    """Error raised inside the application and converted to ApiFailure at the edge.

    Captures the raising call site so handlers can log where the error came from.
    """

    def __init__(
        self,
        errcode: AppErrorCode | str,
        errmesg: str,
        status_code: int = HttpStatusCode.BAD_REQUEST,
    ):
        super().__init__(errmesg)
        self.errcode = errcode.value if isinstance(errcode, AppErrorCode) else str(errcode)
        self.errmesg = errmesg
        self.status_code = int(status_code)
        self.erresid = uuid4().hex[:10]

        caller_frame = inspect.stack()[1]
        self.caller_info = (
            f"{caller_frame.filename}:{caller_frame.function}:{caller_frame.lineno}"
        )

    def __repr__(self) -> str:
        return f"AppError(errcode={self.errcode!r}, status_code={self.status_code}, errmesg={self.errmesg!r})"


__all__ = ["AppError", "AppErrorCode", "HttpStatusCode"]
