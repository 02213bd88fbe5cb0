"""Build event models.

The engine reports build progress as loosely-typed JSON messages that may
carry a ``stream`` field, a ``status`` field, both, or neither.  They are
classified here into an explicit tagged union so the forwarding rule is
structural: every present field becomes one event, ``stream`` first.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from shipwright.models.enums import BuildEventKind


class StreamEvent(BaseModel):
    """Incremental build log text (a Dockerfile step, RUN output, ...)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal[BuildEventKind.STREAM] = BuildEventKind.STREAM
    text: str


class StatusEvent(BaseModel):
    """Engine status text (base image pull progress, digests, ...)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal[BuildEventKind.STATUS] = BuildEventKind.STATUS
    text: str


BuildEvent = Annotated[StreamEvent | StatusEvent, Field(discriminator="kind")]


def classify_build_message(message: Mapping[str, Any]) -> list[BuildEvent]:
    """Split one raw engine build message into zero, one or two events."""
    events: list[BuildEvent] = []
    stream = message.get("stream")
    if stream is not None:
        events.append(StreamEvent(text=str(stream)))
    status = message.get("status")
    if status is not None:
        events.append(StatusEvent(text=str(status)))
    return events
