"""
Hard failures. These abort a turn or request.

Soft failures (bad tool params, entity not found, malformed extraction)
are returned as result objects instead. See tools/results.py and
services/extraction.py.
"""


class AisleError(Exception):
    """Base class for errors the HTTP layer knows how to render."""


class InputRejected(AisleError):
    """User input failed a guardrail (empty, too long)."""


class UpstreamModelFailure(AisleError):
    """The model call failed or timed out. Nothing was written."""


class PersistenceFailure(AisleError):
    """A store write failed. The caller's transaction must be rolled back."""


class RateLimited(AisleError):
    """Caller exceeded the request window."""

    def __init__(self, message: str, retry_after: int = 0):
        super().__init__(message)
        self.retry_after = retry_after
