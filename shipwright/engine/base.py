"""Container engine interface.

The orchestrators only ever talk to the engine through this protocol.  Calls
are async; anything the engine reports incrementally (build output, pull
progress, wait results, logs) is an async iterator that is pulled one item at
a time and cannot be restarted once consumed.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Mapping
from typing import Any, Protocol, runtime_checkable

from shipwright.models.container import BuildRequest, ContainerConfig, ContainerHandle, ExitOutcome
from shipwright.models.enums import WaitCondition


@runtime_checkable
class Engine(Protocol):
    """Async protocol for the engine operations used by build and run.

    Implementations raise ``TransportError`` when the engine cannot be
    reached and ``EngineRejectionError`` when it refuses a request.
    """

    def build_image(self, request: BuildRequest) -> AsyncIterator[Mapping[str, Any]]:
        """Upload the build context and yield raw build messages (``stream`` / ``status`` fields)."""
        ...

    def pull_image(self, reference: str) -> AsyncIterator[Mapping[str, Any]]:
        """Pull or refresh ``reference`` and yield raw progress messages."""
        ...

    async def create_container(self, config: ContainerConfig) -> ContainerHandle:
        """Create (but do not start) a container."""
        ...

    async def start_container(self, handle: ContainerHandle) -> None:
        ...

    def wait_container(
        self,
        handle: ContainerHandle,
        condition: WaitCondition = WaitCondition.NOT_RUNNING,
    ) -> AsyncIterator[ExitOutcome]:
        """Block until ``condition`` holds and yield at most one exit outcome."""
        ...

    def fetch_logs(
        self,
        handle: ContainerHandle,
        *,
        stdout: bool = True,
        stderr: bool = True,
        timestamps: bool = True,
    ) -> AsyncIterator[str]:
        """Yield the container's log lines in order, without following."""
        ...

    async def remove_container(self, handle: ContainerHandle, *, force: bool = True) -> None:
        ...
