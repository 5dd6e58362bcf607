from typing import List, Optional, Union


class NimbusError(Exception):
    """Base class for errors that map onto an HTTP status."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict:
        return {"error": self.message}


class AuthError(NimbusError):
    status_code = 401


class ValidationError(NimbusError):
    status_code = 400


class ConflictError(NimbusError):
    status_code = 400


class NotFoundError(NimbusError):
    status_code = 404


class UpstreamError(NimbusError):
    """
    Target engine connect or execution failure.
    `code` is the engine's own error number, passed through untouched.
    """
    status_code = 500

    def __init__(self, message: str, code: Optional[Union[int, str]] = None):
        super().__init__(message)
        self.code = code

    def to_payload(self) -> dict:
        return {"error": self.message, "details": self.code}


class PartialUpdateError(UpstreamError):
    """A multi-field write stopped part way; `applied` fields stay applied."""

    def __init__(self, message: str, code=None, applied: List[str] = None, failed: Optional[str] = None):
        super().__init__(message, code)
        self.applied = list(applied or [])
        self.failed = failed

    def to_payload(self) -> dict:
        payload = super().to_payload()
        payload["applied"] = self.applied
        payload["failed"] = self.failed
        return payload
