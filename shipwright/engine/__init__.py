"""Container engine adapters."""

from shipwright.engine.base import Engine
from shipwright.engine.docker import DockerEngine

__all__ = ["DockerEngine", "Engine"]
