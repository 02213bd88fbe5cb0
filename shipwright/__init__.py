"""Shipwright - build container images and run commands in fresh containers.

Public surface:

- ``build_context``: package a Dockerfile into a gzip-compressed tar build context
- ``EventRelay``: bounded multi-producer / single-consumer text event relay
- ``BuildOrchestrator``: build an image and forward engine output to a sink
- ``RunOrchestrator``: pull -> create -> start -> wait -> logs on failure -> remove
- ``DockerEngine``: Docker Engine API adapter used by both orchestrators
"""

from shipwright.archive import DEFAULT_DOCKERFILE, DOCKERFILE_NAME, build_context
from shipwright.engine import DockerEngine, Engine
from shipwright.errors import (
    ArchiveError,
    EngineError,
    EngineRejectionError,
    SinkClosedError,
    TransportError,
)
from shipwright.orchestration import BuildOrchestrator, RunOrchestrator
from shipwright.relay import EventRelay

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_DOCKERFILE",
    "DOCKERFILE_NAME",
    "ArchiveError",
    "BuildOrchestrator",
    "DockerEngine",
    "Engine",
    "EngineError",
    "EngineRejectionError",
    "EventRelay",
    "RunOrchestrator",
    "SinkClosedError",
    "TransportError",
    "build_context",
]
