"""Exceptions surfaced by the build and run orchestrators.

Every failure that ``BuildOrchestrator.build`` or ``RunOrchestrator.run`` can
raise derives from ``EngineError``.  Nothing here is retried: the first error
ends the invocation.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base class for failures talking to the container engine or the sink."""


class TransportError(EngineError):
    """The engine is unreachable or the connection dropped mid-stream."""


class EngineRejectionError(EngineError):
    """The engine answered a request with a well-formed error."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SinkClosedError(EngineError):
    """An event was forwarded to a relay whose consumer has gone away."""


class ArchiveError(RuntimeError):
    """The build context archive could not be serialized."""
