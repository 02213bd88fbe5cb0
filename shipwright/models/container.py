"""Request and lifecycle models for builds and container runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from anyio.streams.memory import MemoryObjectSendStream


# -- Build -------------------------------------------------------------------


@dataclass(frozen=True)
class BuildRequest:
    """An image build: target name plus a gzip-compressed tar build context."""

    image_name: str
    build_context: bytes = field(repr=False)
    dockerfile: str = "Dockerfile"
    pull: bool = True
    """Always attempt to pull a newer version of the base image."""
    remove_intermediate: bool = True
    """Remove intermediate containers after a successful build."""


# -- Run ---------------------------------------------------------------------


@dataclass(frozen=True)
class RunRequest:
    """A single command execution in a fresh container of ``image_reference``."""

    image_reference: str
    command: tuple[str, ...]
    output_sink: MemoryObjectSendStream[str] | None = field(default=None, compare=False)


@dataclass(frozen=True)
class ContainerConfig:
    """Creation parameters submitted to the engine."""

    image: str
    command: tuple[str, ...]
    attach_stdout: bool = True
    attach_stderr: bool = True


@dataclass(frozen=True)
class ContainerHandle:
    """Engine-assigned container identifier.

    Owned by the run that created it; invalid once the container is removed.
    """

    id: str

    def __str__(self) -> str:
        return self.id[:12]


class ExitOutcome(BaseModel):
    """Terminal status reported by a container wait."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    status_code: int = Field(alias="StatusCode")

    @property
    def succeeded(self) -> bool:
        return self.status_code == 0
