"""
Result Type

Data access functions report expected failures as values instead of raising.
``Ok`` carries the payload, ``Err`` carries an ``ErrorKind`` and a message.
"""

import enum
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, enum.Enum):
    """Failure categories surfaced by the data access layer"""
    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    VALIDATION = "validation"
    CONFLICT = "conflict"
    NETWORK = "network"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T = None

    @property
    def success(self) -> bool:
        return True

    @property
    def error(self) -> None:
        return None


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str = ""

    @property
    def success(self) -> bool:
        return False

    @property
    def error(self) -> str:
        return self.message or self.kind.value

    @property
    def value(self) -> Any:
        return None


Result = Union[Ok[T], Err]


def as_dict(result: "Result", data_key: Optional[str] = None) -> dict:
    """Render a result as the ``{success, error}`` shape used by the API"""
    payload = {"success": result.success, "error": result.error}
    if data_key and result.success:
        payload[data_key] = result.value
    return payload
