"""
Port forwarding command for already running containers.

Publishes ports of a running container on the host without touching the
container, through socat proxy containers. Forwardings are re-established
when the target restarts within the running timeout.

Example:
    # Target's only IP, port 80, on a random local port
    ctrfwd port-forward my-nginx -L 80

    # Local 8080 to the target's port 80
    ctrfwd port-forward my-nginx -L 8080:80

    # Something bound to the target's loopback
    ctrfwd port-forward my-db -L 5432:127.0.0.1:5432
"""

import asyncio
import signal
from typing import Annotated

import typer

from ctrfwd.config import config
from ctrfwd.docker.client import get_docker_manager
from ctrfwd.docker.exceptions import DockerError
from ctrfwd.forward.exceptions import ForwardError, ForwardersFailedError
from ctrfwd.forward.report import Reporter
from ctrfwd.forward.session import ForwardingSession
from ctrfwd.cli.output import console, print_error
from ctrfwd.models.enums import OutputFormat
from ctrfwd.utils.logger import get_logger

logger = get_logger(__name__)


def port_forward(
    target: Annotated[str, typer.Argument(help="Target container name or id")],
    forwardings: Annotated[
        list[str] | None,
        typer.Option(
            "--local",
            "-L",
            help="[[LOCAL_HOST:]LOCAL_PORT:][REMOTE_HOST:]REMOTE_PORT (repeatable)",
        ),
    ] = None,
    running_timeout: Annotated[
        float | None,
        typer.Option(
            "--running-timeout",
            min=0,
            help="Seconds to wait for the target to (re)start; 0 exits when it stops",
        ),
    ] = None,
    image: Annotated[
        str | None,
        typer.Option("--image", help="Forwarder image (must provide socat)"),
    ] = None,
    quiet: Annotated[
        bool, typer.Option("--quiet", "-q", help="Suppress progress output")
    ] = False,
    output: Annotated[
        OutputFormat,
        typer.Option("--output", "-o", help="Forwarding line format"),
    ] = OutputFormat.TEXT,
):
    """
    Publish one or more ports of a running container.

    Runs until interrupted. Ctrl+C removes every proxy container.
    """
    if not forwardings:
        print_error("At least one forwarding (-L) is required.")
        raise typer.Exit(1)

    reporter = Reporter(console=console, quiet=quiet, output_format=output)

    try:
        docker = get_docker_manager()
        asyncio.run(
            _run_session(
                ForwardingSession(
                    docker,
                    target,
                    forwardings,
                    stop=asyncio.Event(),
                    reporter=reporter,
                    running_timeout=running_timeout,
                    image=image or config.FORWARDER_IMAGE,
                )
            )
        )

    except ForwardersFailedError as e:
        print_error(str(e))
        for error in e.errors:
            print_error(f"  {error}")
        raise typer.Exit(1)
    except (ForwardError, DockerError) as e:
        print_error(str(e))
        raise typer.Exit(1)
    except KeyboardInterrupt:
        console.print("\n[dim]Stopped.[/dim]")


async def _run_session(session: ForwardingSession) -> None:
    """Run a session with SIGINT/SIGTERM wired to its stop token."""
    loop = asyncio.get_running_loop()
    signals = (signal.SIGINT, signal.SIGTERM)

    for sig in signals:
        try:
            loop.add_signal_handler(sig, session.stop.set)
        except (NotImplementedError, RuntimeError):
            # No loop signal handlers here (Windows, non-main thread);
            # Ctrl+C still surfaces as KeyboardInterrupt
            logger.debug(f"Cannot install handler for {sig.name}")

    try:
        await session.run()
    finally:
        for sig in signals:
            try:
                loop.remove_signal_handler(sig)
            except (NotImplementedError, RuntimeError):
                pass
