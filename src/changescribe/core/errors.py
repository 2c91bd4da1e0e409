from __future__ import annotations


class ChangescribeError(Exception):
    """Base error with a stable code that callers can branch on."""
    code = "changescribe_error"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class Unauthorized(ChangescribeError):
    """No active session, or the credential is missing or rejected."""
    code = "unauthorized"
    status_code = 401


class UpstreamUnavailable(ChangescribeError):
    """GitHub or the model endpoint is unreachable or returned a non-success status."""
    code = "upstream_unavailable"
    status_code = 502


class EmptyResult(ChangescribeError):
    """No commits in the requested window. An expected state, not a failure."""
    code = "no_commits"
    status_code = 404


class ModelNotConfigured(ChangescribeError):
    """No API key for the model endpoint."""
    code = "model_not_configured"
    status_code = 503


class MalformedUpstreamResponse(ChangescribeError):
    """Upstream data that is not JSON or does not have the expected shape."""
    code = "malformed_upstream_response"
    status_code = 502
