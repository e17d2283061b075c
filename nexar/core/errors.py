from __future__ import annotations

from typing import Any, Optional


class NexarError(Exception):
    """Base class for failures the service reports to its callers.

    ``status_code`` is the HTTP status the API layer renders and ``code`` is a
    stable machine-readable tag so clients can branch without parsing ``detail``.
    """

    status_code = 500
    code = "error"

    def __init__(self, detail: str = "", *, extra: Optional[dict[str, Any]] = None) -> None:
        super().__init__(detail or self.code)
        self.detail = detail or self.code
        self.extra = extra or {}

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"detail": self.detail, "code": self.code}
        payload.update(self.extra)
        return payload


class ValidationError(NexarError):
    status_code = 400
    code = "validation_error"


class NotFound(NexarError):
    status_code = 404
    code = "not_found"


class Conflict(NexarError):
    status_code = 409
    code = "conflict"


class Unauthorized(NexarError):
    status_code = 401
    code = "unauthorized"


class Forbidden(Unauthorized):
    status_code = 403
    code = "forbidden"


class InsufficientFunds(NexarError):
    status_code = 402
    code = "insufficient_funds"


class UpstreamError(NexarError):
    status_code = 502
    code = "upstream_error"


class ServiceUnavailable(NexarError):
    status_code = 503
    code = "service_unavailable"
