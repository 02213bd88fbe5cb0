"""Shared test fixtures: an in-memory engine and relay helpers.

Orchestrator tests run against ``FakeEngine``, which records every call in
order and replays scripted responses.  No Docker daemon is needed except for
tests marked ``@pytest.mark.integration``.
"""

from __future__ import annotations

import os
from collections.abc import AsyncIterator, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

import pytest

from shipwright.errors import TransportError
from shipwright.models.container import BuildRequest, ContainerConfig, ContainerHandle, ExitOutcome
from shipwright.models.enums import WaitCondition
from shipwright.relay import EventRelay
from shipwright.settings import _get_settings_cached


@dataclass
class FakeEngine:
    """Scriptable ``Engine`` that records calls as ``(operation, argument)`` tuples.

    A ``*_error`` attribute makes the matching operation raise it.  Stream
    errors (``build_error_after``, ``logs_error_after``) fire after that many
    items have been yielded.
    """

    build_messages: list[Mapping[str, Any]] = field(default_factory=list)
    build_error_after: int | None = None
    pull_messages: list[Mapping[str, Any]] = field(default_factory=lambda: [{"status": "Pulling"}])
    exit_status: int | None = 0
    log_lines: list[str] = field(default_factory=list)
    logs_error_after: int | None = None
    container_id: str = "c0ffee0123456789"

    pull_error: Exception | None = None
    create_error: Exception | None = None
    start_error: Exception | None = None
    wait_error: Exception | None = None
    remove_error: Exception | None = None

    calls: list[tuple[str, Any]] = field(default_factory=list)
    builds: list[BuildRequest] = field(default_factory=list)
    closed: bool = False

    def ops(self) -> list[str]:
        return [op for op, _ in self.calls]

    def close(self) -> None:
        self.closed = True

    async def build_image(self, request: BuildRequest) -> AsyncIterator[Mapping[str, Any]]:
        self.calls.append(("build", request.image_name))
        self.builds.append(request)
        for index, message in enumerate(self.build_messages):
            if self.build_error_after == index:
                msg = "connection reset during build"
                raise TransportError(msg)
            yield message
        if self.build_error_after == len(self.build_messages):
            msg = "connection reset during build"
            raise TransportError(msg)

    async def pull_image(self, reference: str) -> AsyncIterator[Mapping[str, Any]]:
        self.calls.append(("pull", reference))
        if self.pull_error:
            raise self.pull_error
        for message in self.pull_messages:
            yield message

    async def create_container(self, config: ContainerConfig) -> ContainerHandle:
        self.calls.append(("create", config))
        if self.create_error:
            raise self.create_error
        return ContainerHandle(id=self.container_id)

    async def start_container(self, handle: ContainerHandle) -> None:
        self.calls.append(("start", handle.id))
        if self.start_error:
            raise self.start_error

    async def wait_container(
        self,
        handle: ContainerHandle,
        condition: WaitCondition = WaitCondition.NOT_RUNNING,
    ) -> AsyncIterator[ExitOutcome]:
        self.calls.append(("wait", condition))
        if self.wait_error:
            raise self.wait_error
        if self.exit_status is not None:
            yield ExitOutcome(status_code=self.exit_status)

    async def fetch_logs(
        self,
        handle: ContainerHandle,
        *,
        stdout: bool = True,
        stderr: bool = True,
        timestamps: bool = True,
    ) -> AsyncIterator[str]:
        self.calls.append(("logs", {"stdout": stdout, "stderr": stderr, "timestamps": timestamps}))
        for index, line in enumerate(self.log_lines):
            if self.logs_error_after == index:
                msg = "connection reset during logs"
                raise TransportError(msg)
            yield line

    async def remove_container(self, handle: ContainerHandle, *, force: bool = True) -> None:
        self.calls.append(("remove", {"id": handle.id, "force": force}))
        if self.remove_error:
            raise self.remove_error


class Collector:
    """Relay handler that keeps every delivered item."""

    def __init__(self) -> None:
        self.items: list[str] = []

    def __call__(self, text: str) -> None:
        self.items.append(text)


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def relay() -> EventRelay:
    return EventRelay(capacity=4)


@pytest.fixture
def collector() -> Collector:
    return Collector()


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Isolate tests from SHIPWRIGHT_* variables in the caller's environment."""
    for key in list(os.environ):
        if key.startswith("SHIPWRIGHT_"):
            monkeypatch.delenv(key)
    _get_settings_cached.cache_clear()
    yield
    _get_settings_cached.cache_clear()
