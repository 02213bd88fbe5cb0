"""Data models for builds, runs and relayed events."""

from shipwright.models.container import (
    BuildRequest,
    ContainerConfig,
    ContainerHandle,
    ExitOutcome,
    RunRequest,
)
from shipwright.models.enums import BuildEventKind, WaitCondition
from shipwright.models.events import (
    BuildEvent,
    StatusEvent,
    StreamEvent,
    classify_build_message,
)

__all__ = [
    "BuildEvent",
    "BuildEventKind",
    "BuildRequest",
    "ContainerConfig",
    "ContainerHandle",
    "ExitOutcome",
    "RunRequest",
    "StatusEvent",
    "StreamEvent",
    "WaitCondition",
    "classify_build_message",
]
