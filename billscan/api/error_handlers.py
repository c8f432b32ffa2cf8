"""
Custom exception handlers for FastAPI.
Rejected bill requests answer with ``{"kind", "message"}`` at the top level of the body.
"""

from fastapi import Request
from fastapi.responses import JSONResponse

from billscan.services.results import Failure, http_status_for


class FailureResponseError(Exception):
    """Raised by routes to turn a service Failure into an error response."""

    def __init__(self, failure: Failure):
        super().__init__(failure.message)
        self.failure = failure


def failure_response_handler(request: Request, exc: FailureResponseError) -> JSONResponse:
    return JSONResponse(
        status_code=http_status_for(exc.failure.kind),
        content=exc.failure.to_response(),
    )
