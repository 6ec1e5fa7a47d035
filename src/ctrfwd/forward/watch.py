"""
Container wait bridge.

docker-py's wait call blocks until the container leaves the running state.
It runs on a daemon thread and its outcome is delivered to an asyncio
future: a result (exit status) when the container stops, an exception when
the wait itself fails. Daemon threads keep an abandoned wait from holding
the interpreter open at exit.
"""

import asyncio
import threading

from ctrfwd.utils.logger import get_logger

logger = get_logger(__name__)


def watch_container(docker, container_id: str) -> asyncio.Future:
    """
    Start waiting for a container to stop.

    Args:
        docker: DockerManager (or compatible runtime).
        container_id: Container id.

    Returns:
        Future resolving to the exit status code, or failing with the wait
        error.
    """
    loop = asyncio.get_running_loop()
    future = loop.create_future()

    def deliver(status: int | None, error: BaseException | None) -> None:
        if future.done():
            return
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(status)

    def wait() -> None:
        status, error = None, None
        try:
            status = docker.wait_container(container_id)
        except Exception as e:
            error = e
        try:
            loop.call_soon_threadsafe(deliver, status, error)
        except RuntimeError:
            # Event loop already closed, nobody is listening anymore
            logger.debug(f"Dropped wait result for {container_id[:12]}")

    threading.Thread(
        target=wait, name=f"wait-{container_id[:12]}", daemon=True
    ).start()
    return future
