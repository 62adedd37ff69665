"""
models/result.py

Result type returned at the backend boundary: `Ok(value)` or `Err(error)`.
Callers branch with `isinstance(result, Err)` instead of probing optional
fields of raw JSON.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, Enum):
    NETWORK = "network"            # connection refused, timeout, DNS ...
    UNSUCCESSFUL = "unsuccessful"  # HTTP error status or `success: false`
    MALFORMED = "malformed"        # body does not match the expected schema


@dataclass(frozen=True)
class ApiError:
    kind: ErrorKind
    message: str = ""
    status_code: Optional[int] = None

    def __str__(self) -> str:
        status = f" [{self.status_code}]" if self.status_code is not None else ""
        return f"{self.kind.value}{status}: {self.message}"


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    error: ApiError

    @property
    def is_ok(self) -> bool:
        return False


Result = Union[Ok[T], Err]
