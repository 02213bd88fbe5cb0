"""Shared enumerations."""

from __future__ import annotations

from enum import StrEnum


class BuildEventKind(StrEnum):
    """Kind of text an image build relays."""

    STREAM = "stream"
    STATUS = "status"


class WaitCondition(StrEnum):
    """Container state transitions an engine wait can block on."""

    NOT_RUNNING = "not-running"
    NEXT_EXIT = "next-exit"
    REMOVED = "removed"
