"""
ctrfwd CLI entry point.

Usage:
    ctrfwd [OPTIONS] COMMAND [ARGS]...

Commands:
    port-forward  Publish ports of a running container
    prune         Remove leftover proxy containers
"""

from typing import Annotated

import typer

from ctrfwd import __version__
from ctrfwd.cli.commands import forward, prune
from ctrfwd.cli.output import console, print_error
from ctrfwd.config import config
from ctrfwd.models.enums import LogLevel
from ctrfwd.utils.logger import configure_logging

app = typer.Typer(
    name="ctrfwd",
    help="Publish ports of already running containers",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Register commands. port-forward is a plain command (not a group) so its
# options may follow the TARGET argument.
app.command("port-forward", help="Publish ports of a running container")(
    forward.port_forward
)
app.add_typer(prune.app, name="prune", help="Remove leftover proxy containers")


def _version_callback(value: bool):
    if value:
        console.print(f"ctrfwd {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    log_level: Annotated[
        LogLevel | None,
        typer.Option("--log-level", help="Log verbosity", envvar="CTRFWD_LOG_LEVEL"),
    ] = None,
    docker_host: Annotated[
        str | None,
        typer.Option("--docker-host", help="Docker daemon URL", envvar="DOCKER_HOST"),
    ] = None,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version", callback=_version_callback, is_eager=True, help="Show version"
        ),
    ] = None,
):
    """
    ctrfwd - publish ports of already running containers.

    Forwards host ports into a container's network or network namespace
    through short-lived socat proxy containers.
    """
    try:
        config.load_env()
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(1)
    if log_level:
        config.LOG_LEVEL = log_level
    if docker_host:
        config.DOCKER_HOST = docker_host
    configure_logging(config.LOG_LEVEL)


def run():
    """Console script entry point."""
    app()


if __name__ == "__main__":
    run()
