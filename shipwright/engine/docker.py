"""Docker Engine adapter.

Implements the ``Engine`` protocol on top of the docker SDK's low-level
``APIClient``.  The SDK is synchronous, so every request and every read from
a streaming response runs through ``anyio.to_thread.run_sync``; from the
orchestrator's point of view each engine call and each stream item is a
suspension point.

SDK exceptions are translated at this boundary:

- ``docker.errors.APIError`` (the daemon answered with an error status)
  -> ``EngineRejectionError``
- any other ``DockerException`` or ``OSError`` (``requests`` connection and
  chunked-encoding errors derive from it) -> ``TransportError``

Build and pull report failures in-band as ``{"error": ..., "errorDetail":
...}`` messages on an HTTP 200 stream; those become ``EngineRejectionError``
too.
"""

from __future__ import annotations

import contextlib
import io
import logging
from collections.abc import AsyncIterator, Callable, Iterator, Mapping
from functools import partial
from typing import TYPE_CHECKING, Any, TypeVar

import docker
from anyio import to_thread
from docker.errors import APIError, DockerException

from shipwright.errors import EngineRejectionError, TransportError
from shipwright.models.container import BuildRequest, ContainerConfig, ContainerHandle, ExitOutcome
from shipwright.models.enums import WaitCondition

if TYPE_CHECKING:
    from docker import APIClient

    from shipwright.settings import ShipwrightSettings

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Sentinel returned by next() once a stream is exhausted
_END = object()


class DockerEngine:
    """``Engine`` implementation backed by a docker ``APIClient``."""

    def __init__(self, client: APIClient) -> None:
        self._client = client

    @classmethod
    def from_settings(cls, settings: ShipwrightSettings) -> DockerEngine:
        """Connect to ``settings.docker_host``, or to the environment's default daemon.

        Raises ``TransportError`` if the client cannot be constructed (for
        example, API version negotiation fails because no daemon answers).
        """
        kwargs: dict[str, Any] = {"timeout": settings.docker_timeout}
        if settings.docker_api_version:
            kwargs["version"] = settings.docker_api_version

        try:
            if settings.docker_host:
                client = docker.APIClient(base_url=settings.docker_host, **kwargs)
            else:
                client = docker.from_env(**kwargs).api
        except DockerException as exc:
            msg = f"Cannot connect to the Docker daemon: {exc}"
            raise TransportError(msg) from exc
        return cls(client)

    def close(self) -> None:
        self._client.close()

    # -- Images ----------------------------------------------------------------

    async def build_image(self, request: BuildRequest) -> AsyncIterator[Mapping[str, Any]]:
        action = f"build {request.image_name}"
        logger.debug("Uploading %d byte build context for %s", len(request.build_context), request.image_name)
        stream = await self._call(
            action,
            partial(
                self._client.build,
                fileobj=io.BytesIO(request.build_context),
                custom_context=True,
                encoding="gzip",
                tag=request.image_name,
                dockerfile=request.dockerfile,
                pull=request.pull,
                rm=request.remove_intermediate,
                decode=True,
            ),
        )
        async with contextlib.aclosing(self._iterate(stream, action)) as messages:
            async for message in messages:
                _raise_for_stream_error(message, action)
                yield message

    async def pull_image(self, reference: str) -> AsyncIterator[Mapping[str, Any]]:
        action = f"pull {reference}"
        stream = await self._call(action, partial(self._client.pull, reference, stream=True, decode=True))
        async with contextlib.aclosing(self._iterate(stream, action)) as messages:
            async for message in messages:
                _raise_for_stream_error(message, action)
                yield message

    # -- Containers ------------------------------------------------------------

    async def create_container(self, config: ContainerConfig) -> ContainerHandle:
        response = await self._call(
            f"create container from {config.image}",
            partial(
                self._client.create_container,
                image=config.image,
                command=list(config.command),
                attach_stdout=config.attach_stdout,
                attach_stderr=config.attach_stderr,
            ),
        )
        for warning in response.get("Warnings") or []:
            logger.warning("Engine warning creating container from %s: %s", config.image, warning)
        return ContainerHandle(id=response["Id"])

    async def start_container(self, handle: ContainerHandle) -> None:
        await self._call(f"start container {handle}", partial(self._client.start, handle.id))

    async def wait_container(
        self,
        handle: ContainerHandle,
        condition: WaitCondition = WaitCondition.NOT_RUNNING,
    ) -> AsyncIterator[ExitOutcome]:
        # timeout=None: a wait lasts as long as the container runs.
        response = await self._call(
            f"wait container {handle}",
            partial(self._client.wait, handle.id, timeout=None, condition=str(condition)),
        )
        if not response or "StatusCode" not in response:
            return
        error = response.get("Error") or {}
        if error.get("Message"):
            logger.warning("Container %s wait reported: %s", handle, error["Message"])
        yield ExitOutcome.model_validate(response)

    async def fetch_logs(
        self,
        handle: ContainerHandle,
        *,
        stdout: bool = True,
        stderr: bool = True,
        timestamps: bool = True,
    ) -> AsyncIterator[str]:
        action = f"fetch logs of container {handle}"
        stream = await self._call(
            action,
            partial(
                self._client.logs,
                handle.id,
                stdout=stdout,
                stderr=stderr,
                timestamps=timestamps,
                stream=True,
                follow=False,
            ),
        )
        async with contextlib.aclosing(self._iterate(stream, action)) as chunks:
            async for chunk in chunks:
                yield chunk.decode("utf-8", errors="replace") if isinstance(chunk, bytes) else str(chunk)

    async def remove_container(self, handle: ContainerHandle, *, force: bool = True) -> None:
        await self._call(f"remove container {handle}", partial(self._client.remove_container, handle.id, force=force))

    # -- Helpers ---------------------------------------------------------------

    async def _call(self, action: str, func: Callable[[], T]) -> T:
        with _translate_errors(action):
            return await to_thread.run_sync(func)

    async def _iterate(self, stream: Iterator[T], action: str) -> AsyncIterator[T]:
        """Pull items from a blocking SDK stream one at a time."""
        iterator = iter(stream)
        try:
            while True:
                with _translate_errors(action):
                    item = await to_thread.run_sync(next, iterator, _END)
                if item is _END:
                    return
                yield item  # type: ignore[misc]
        finally:
            close = getattr(iterator, "close", None)
            if close is not None:
                close()


@contextlib.contextmanager
def _translate_errors(action: str) -> Iterator[None]:
    try:
        yield
    except APIError as exc:
        msg = f"Engine rejected {action}: {exc.explanation or exc}"
        raise EngineRejectionError(msg, status_code=exc.status_code) from exc
    except (DockerException, OSError) as exc:
        msg = f"Engine transport failed during {action}: {exc}"
        raise TransportError(msg) from exc


def _raise_for_stream_error(message: Mapping[str, Any], action: str) -> None:
    error = message.get("error")
    if not error:
        return
    detail = message.get("errorDetail") or {}
    msg = f"Engine rejected {action}: {error}"
    raise EngineRejectionError(msg, status_code=detail.get("code"))
