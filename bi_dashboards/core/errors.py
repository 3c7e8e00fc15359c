"""
Workflow errors — one exception type tagged with an explicit kind.

The request layer maps ``WorkflowError.status_code`` straight onto the
HTTP response; the kind decides the default status.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    UPSTREAM = "upstream"
    PARTIAL = "partial"


_STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.UPSTREAM: 500,
    ErrorKind.PARTIAL: 500,
}


class WorkflowError(Exception):
    """
    Failure raised by the BI client, the document store or the
    dashboard workflow.

    Attributes:
        message:         Human-readable reason, returned to the caller.
        kind:            ``ErrorKind`` tag.
        status_code:     HTTP status for the request layer.
        upstream_status: Remote HTTP status when ``kind`` is UPSTREAM.
    """

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.UPSTREAM,
        status_code: Optional[int] = None,
        upstream_status: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.status_code = status_code or _STATUS_BY_KIND[kind]
        self.upstream_status = upstream_status

    def __str__(self) -> str:
        return self.message

    def wrap(self, prefix: str) -> "WorkflowError":
        """Return a copy whose message is prefixed, keeping kind and status."""
        return WorkflowError(
            f"{prefix}: {self.message}",
            kind=self.kind,
            status_code=self.status_code,
            upstream_status=self.upstream_status,
        )


def validation_error(message: str) -> WorkflowError:
    return WorkflowError(message, ErrorKind.VALIDATION)


def not_found(message: str) -> WorkflowError:
    return WorkflowError(message, ErrorKind.NOT_FOUND)


def conflict(message: str) -> WorkflowError:
    return WorkflowError(message, ErrorKind.CONFLICT)


def upstream_error(message: str, upstream_status: Optional[int] = None) -> WorkflowError:
    return WorkflowError(message, ErrorKind.UPSTREAM, upstream_status=upstream_status)
