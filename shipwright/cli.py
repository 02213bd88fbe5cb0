import asyncio
from collections.abc import Callable, Coroutine
from pathlib import Path
from typing import Any, TypeVar

import click

from shipwright.archive import DEFAULT_DOCKERFILE
from shipwright.engine.docker import DockerEngine
from shipwright.errors import EngineError
from shipwright.log import setup_logging
from shipwright.orchestration import BuildOrchestrator, RunOrchestrator
from shipwright.relay import EventRelay, echo_event
from shipwright.settings import ShipwrightSettings, get_settings

T = TypeVar("T")


@click.group()
@click.option("--log-level", default=None, help="Log level (default: from SHIPWRIGHT_LOG_LEVEL or INFO).")
@click.pass_context
def main(ctx: click.Context, log_level: str | None) -> None:
    """Shipwright - build images and run commands in fresh containers."""
    settings = get_settings()
    setup_logging(log_level or settings.log_level)
    ctx.obj = settings


@main.command()
@click.argument("name")
@click.option(
    "--dockerfile",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Dockerfile to package (default: the built-in alpine descriptor).",
)
@click.pass_obj
def build(settings: ShipwrightSettings, name: str, dockerfile: Path | None) -> None:
    """Build image NAME, printing build output as it arrives."""
    content = dockerfile.read_text(encoding="utf-8") if dockerfile else DEFAULT_DOCKERFILE

    async def _build(engine: DockerEngine) -> None:
        relay = EventRelay(settings.relay_capacity)
        async with relay.serve(echo_event) as sink:
            await BuildOrchestrator(engine).build(name, sink, dockerfile=content)

    _run_with_engine(settings, _build)


@main.command(context_settings={"ignore_unknown_options": True})
@click.argument("image")
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
@click.pass_obj
def run(settings: ShipwrightSettings, image: str, command: tuple[str, ...]) -> None:
    """Run COMMAND in a fresh IMAGE container; logs are printed if it fails."""

    async def _run(engine: DockerEngine) -> int | None:
        relay = EventRelay(settings.relay_capacity)
        async with relay.serve(echo_event) as sink:
            outcome = await RunOrchestrator(engine, cleanup_on_error=settings.cleanup_on_error).run(
                image, command, sink
            )
        return outcome.status_code if outcome else None

    status_code = _run_with_engine(settings, _run)
    if status_code:
        raise SystemExit(_process_exit_code(status_code))


@main.command()
@click.pass_obj
def demo(settings: ShipwrightSettings) -> None:
    """Build the demo image, then run a command in alpine, sharing one relay."""

    async def _demo(engine: DockerEngine) -> None:
        relay = EventRelay(settings.relay_capacity)
        async with relay.serve(echo_event) as sink:
            await BuildOrchestrator(engine).build("demo", sink)
            await RunOrchestrator(engine, cleanup_on_error=settings.cleanup_on_error).run(
                "alpine:3.15", ["echo", "in container"], sink
            )

    _run_with_engine(settings, _demo)


def _process_exit_code(status_code: int) -> int:
    """Map a non-zero container status onto a non-zero process exit code.

    The OS keeps only the low byte, so statuses outside 1-255 (256, -1) exit 1.
    """
    return status_code if 0 < status_code <= 255 else 1


def _run_with_engine(settings: ShipwrightSettings, work: Callable[[DockerEngine], Coroutine[Any, Any, T]]) -> T:
    """Connect to the engine, run ``work`` to completion and report engine errors."""
    try:
        engine = DockerEngine.from_settings(settings)
    except EngineError as exc:
        raise click.ClickException(str(exc)) from exc

    try:
        return asyncio.run(work(engine))
    except EngineError as exc:
        raise click.ClickException(str(exc)) from exc
    finally:
        engine.close()


if __name__ == "__main__":
    main()
