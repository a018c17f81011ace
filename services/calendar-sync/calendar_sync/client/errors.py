from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, Enum):
    SESSION_EXPIRED = "session_expired"
    SERVER = "server"
    TRANSPORT = "transport"
    INVALID_RESPONSE = "invalid_response"
    UNKNOWN_STEP = "unknown_step"


@dataclass
class ApiError:
    kind: ErrorKind
    message: str
    status_code: Optional[int] = None

    def __str__(self) -> str:
        return self.message


@dataclass
class Ok(Generic[T]):
    value: T
    ok: bool = True


@dataclass
class Err:
    error: ApiError
    ok: bool = False


Result = Union[Ok[T], Err]


def classify_failure(status_code: int, message: Optional[str]) -> ApiError:
    text = message or f"Status {status_code}"
    if status_code == 401 or "token has expired" in text.lower():
        return ApiError(ErrorKind.SESSION_EXPIRED, text, status_code)
    return ApiError(ErrorKind.SERVER, text, status_code)
