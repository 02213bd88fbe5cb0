"""Image build orchestration."""

from __future__ import annotations

from contextlib import aclosing
from typing import TYPE_CHECKING

from loguru import logger

from shipwright.archive import DEFAULT_DOCKERFILE, DOCKERFILE_NAME, build_context
from shipwright.models.container import BuildRequest
from shipwright.models.events import classify_build_message
from shipwright.relay import forward

if TYPE_CHECKING:
    from anyio.streams.memory import MemoryObjectSendStream

    from shipwright.engine.base import Engine


class BuildOrchestrator:
    """Builds an image from a single-Dockerfile context and relays its output."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    async def build(
        self,
        image_name: str,
        sink: MemoryObjectSendStream[str] | None = None,
        *,
        dockerfile: str = DEFAULT_DOCKERFILE,
    ) -> None:
        """Build ``image_name`` and forward every ``stream`` / ``status`` text to ``sink``.

        Events are forwarded one by one in the order the engine emits them.
        The first error ends the build; anything already forwarded stays
        delivered.

        Raises
        ------
        TransportError:
            The engine connection failed, before or during the build stream.
        EngineRejectionError:
            The engine refused the build or reported a failed step.
        SinkClosedError:
            The relay consumer went away while events were being forwarded.
        """
        request = BuildRequest(
            image_name=image_name,
            build_context=build_context(dockerfile),
            dockerfile=DOCKERFILE_NAME,
            pull=True,
            remove_intermediate=True,
        )
        logger.debug("Build {}: starting", image_name)

        forwarded = 0
        async with aclosing(self._engine.build_image(request)) as messages:
            async for message in messages:
                logger.debug("Build {}: message {!r}", image_name, message)
                if sink is None:
                    continue
                for event in classify_build_message(message):
                    await forward(sink, event.text)
                    forwarded += 1

        logger.debug("Build {}: finished, {} event(s) forwarded", image_name, forwarded)
