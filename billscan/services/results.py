"""Tagged results returned by every stage of the bill ingestion pipeline."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar, Union
from fastapi import status

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Failure categories surfaced to the caller."""
    VALIDATION = "ValidationError"
    UPSTREAM = "UpstreamError"
    EXTRACTION_EMPTY = "ExtractionEmptyError"
    DESERIALIZATION = "DeserializationError"
    STORAGE = "StorageError"


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful stage output."""

    value: T


@dataclass(frozen=True)
class Failure:
    """Failed stage output.

    Attributes:
        kind: Failure category
        message: Human-readable reason, safe to return to the client
        detail: Diagnostics for the logs only (upstream body, offending text)
        status_code: Upstream HTTP status, when there was one
    """

    kind: ErrorKind
    message: str
    detail: Optional[str] = None
    status_code: Optional[int] = None

    def to_response(self) -> Dict[str, Any]:
        """Client-visible representation; diagnostics are left out."""
        return {"kind": self.kind.value, "message": self.message}


Result = Union[Ok[T], Failure]


def http_status_for(kind: ErrorKind) -> int:
    """Map a failure kind to the HTTP status the API responds with."""
    if kind is ErrorKind.VALIDATION:
        return status.HTTP_400_BAD_REQUEST
    return status.HTTP_500_INTERNAL_SERVER_ERROR
