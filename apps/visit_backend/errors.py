from __future__ import annotations


class VisitError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, headers: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.headers = headers


class ValidationError(VisitError):
    status_code = 400
    code = "VALIDATION_ERROR"


class NotFoundError(VisitError):
    status_code = 404
    code = "NOT_FOUND"


class RateLimitError(VisitError):
    status_code = 429
    code = "RATE_LIMITED"


class SiteBlockedError(VisitError):
    status_code = 503
    code = "SITE_BLOCKED"


class InternalError(VisitError):
    pass


MSG_INTERNAL = "Internal server error"
MSG_RATE_LIMITED = "Too many submissions from this IP, please try again later."
