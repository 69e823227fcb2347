from __future__ import annotations


class JobdashError(Exception):
    """Base class for dashboard client errors."""


class RequestFailed(JobdashError):
    """
    Transport-level failure talking to the backend: connection error, timeout,
    non-2xx status or an undecodable payload. No application payload is available.
    """

    def __init__(self, method: str, path: str, reason: str) -> None:
        super().__init__(f"{method} {path} failed: {reason}")
        self.method = method
        self.path = path
        self.reason = reason
