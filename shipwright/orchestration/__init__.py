"""Orchestration of engine calls for image builds and container runs.

- **build**: Build context -> engine build stream -> classified events -> sink
- **run**: pull -> create -> start -> wait -> logs on failure -> remove

Both orchestrators take the sink per call; they never close it.  The caller
owns the relay and decides when producers are done.
"""

from shipwright.orchestration.build import BuildOrchestrator
from shipwright.orchestration.run import RunOrchestrator

__all__ = ["BuildOrchestrator", "RunOrchestrator"]
