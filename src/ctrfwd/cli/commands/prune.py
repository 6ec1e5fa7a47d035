"""
Prune command.

Removes proxy containers left behind by sessions that could not clean up
(killed process, daemon hiccups during teardown).
"""

from typing import Annotated

import typer

from ctrfwd.cli.output import console, print_error, print_success
from ctrfwd.docker.client import get_docker_manager
from ctrfwd.docker.exceptions import DockerError

app = typer.Typer(help="Remove leftover proxy containers")


@app.callback(invoke_without_command=True)
def prune(
    target: Annotated[
        str | None,
        typer.Option("--target", "-t", help="Only proxies of this container"),
    ] = None,
):
    """Force-remove proxy containers created by ctrfwd."""
    try:
        docker = get_docker_manager()
        target_id = docker.inspect_container(target)["Id"] if target else None
        containers = docker.list_forwarder_containers(target_id)
    except DockerError as e:
        print_error(str(e))
        raise typer.Exit(1)

    if not containers:
        console.print("[dim]No proxy containers found.[/dim]")
        return

    failed = 0
    for container in containers:
        if docker.remove_container(container.id, force=True):
            console.print(f"[dim]Removed {container.name}[/dim]")
        else:
            failed += 1

    if failed:
        print_error(f"{failed} proxy container(s) could not be removed.")
        raise typer.Exit(1)
    print_success(f"Removed {len(containers)} proxy container(s).")
