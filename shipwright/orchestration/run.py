"""Container run orchestration.

A run is a strictly sequential lifecycle:

1. **Pull**: refresh the image; the progress stream is drained and discarded
2. **Create**: container bound to the image and command, stdout/stderr attached
3. **Start**
4. **Wait**: until the container is no longer running; yields at most one exit outcome
5. **Logs**: only with a sink and a nonzero exit -- every log line is forwarded
6. **Remove**: forced, whatever the exit code or log capture did

A wait that ends without an outcome (or fails) is not an error: the run moves
on to removal without capturing logs.

Cleanup guard
-------------
Once a container exists, a failure in start, wait or log capture would
normally end the run before stage 6.  With ``cleanup_on_error`` enabled the
orchestrator makes one best-effort forced removal before re-raising.  With it
disabled, such failures leave the container behind for the caller to deal
with.
"""

from __future__ import annotations

from collections.abc import Sequence
from contextlib import aclosing
from typing import TYPE_CHECKING

from loguru import logger

from shipwright.errors import EngineError
from shipwright.models.container import ContainerConfig, ContainerHandle, ExitOutcome, RunRequest
from shipwright.models.enums import WaitCondition
from shipwright.relay import forward

if TYPE_CHECKING:
    from anyio.streams.memory import MemoryObjectSendStream

    from shipwright.engine.base import Engine


class RunOrchestrator:
    """Runs one command in a fresh container and always tries to clean it up."""

    def __init__(self, engine: Engine, *, cleanup_on_error: bool = True) -> None:
        self._engine = engine
        self._cleanup_on_error = cleanup_on_error

    async def run(
        self,
        image_reference: str,
        command: Sequence[str],
        sink: MemoryObjectSendStream[str] | None = None,
    ) -> ExitOutcome | None:
        """Run ``command`` in a new container of ``image_reference``.

        Returns the exit outcome reported by the wait, or ``None`` if the
        engine never reported one.  A nonzero exit is not an error.

        Raises
        ------
        TransportError / EngineRejectionError:
            Any engine call other than the wait failed.
        SinkClosedError:
            The relay consumer went away while log lines were being forwarded.
        """
        request = RunRequest(image_reference=image_reference, command=tuple(command), output_sink=sink)

        await self._pull(request.image_reference)

        logger.debug("Run {}: creating container for {!r}", request.image_reference, request.command)
        handle = await self._engine.create_container(
            ContainerConfig(
                image=request.image_reference,
                command=request.command,
                attach_stdout=True,
                attach_stderr=True,
            )
        )
        logger.debug("Run {}: container {} created", request.image_reference, handle)

        try:
            outcome = await self._execute(handle, request)
        except Exception:
            if self._cleanup_on_error:
                await self._remove_after_failure(handle)
            else:
                logger.warning("Run {}: container {} left behind after failure", request.image_reference, handle)
            raise

        await self._engine.remove_container(handle, force=True)
        logger.debug("Run {}: container {} removed", request.image_reference, handle)
        return outcome

    # -- Stages ----------------------------------------------------------------

    async def _pull(self, image_reference: str) -> None:
        logger.debug("Run {}: pulling image", image_reference)
        async with aclosing(self._engine.pull_image(image_reference)) as progress:
            async for _ in progress:
                pass
        logger.debug("Run {}: image pulled", image_reference)

    async def _execute(self, handle: ContainerHandle, request: RunRequest) -> ExitOutcome | None:
        """Start, wait and (on failure with a sink) capture logs."""
        await self._engine.start_container(handle)
        logger.debug("Run {}: container {} started", request.image_reference, handle)

        outcome = await self._wait(handle)
        if outcome is None:
            logger.warning("Run {}: container {} exited without a reported status", request.image_reference, handle)
            return None

        logger.debug("Run {}: container {} exited with code {}", request.image_reference, handle, outcome.status_code)
        if request.output_sink is not None and not outcome.succeeded:
            await self._capture_logs(handle, request.output_sink)
        return outcome

    async def _wait(self, handle: ContainerHandle) -> ExitOutcome | None:
        try:
            async with aclosing(self._engine.wait_container(handle, WaitCondition.NOT_RUNNING)) as outcomes:
                async for outcome in outcomes:
                    return outcome
        except EngineError as exc:
            logger.warning("Wait on container {} failed, treating as no outcome: {}", handle, exc)
        return None

    async def _capture_logs(self, handle: ContainerHandle, sink: MemoryObjectSendStream[str]) -> None:
        logger.debug("Container {} exited nonzero, capturing logs", handle)
        lines = 0
        async with aclosing(self._engine.fetch_logs(handle, stdout=True, stderr=True, timestamps=True)) as logs:
            async for line in logs:
                await forward(sink, line)
                lines += 1
        logger.debug("Container {}: {} log line(s) forwarded", handle, lines)

    async def _remove_after_failure(self, handle: ContainerHandle) -> None:
        try:
            await self._engine.remove_container(handle, force=True)
        except EngineError as exc:
            logger.warning("Cleanup of container {} failed: {}", handle, exc)
        else:
            logger.debug("Container {} removed after failure", handle)
