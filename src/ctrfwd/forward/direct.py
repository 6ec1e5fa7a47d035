"""
Direct forwarder.

One socat proxy container attached to one of the target's networks. The
proxy listens on the remote port inside its own network namespace, relays
to the target's address on that network, and has its listening port
published on the host.
"""

import asyncio

from ctrfwd.config import config
from ctrfwd.docker.exceptions import DockerError
from ctrfwd.docker.naming import make_labels, proxy_container_name
from ctrfwd.forward.exceptions import ForwarderError
from ctrfwd.forward.report import Reporter
from ctrfwd.forward.watch import watch_container
from ctrfwd.models.enums import ForwardingStrategy
from ctrfwd.models.forwarding import DirectPlan, Forwarding
from ctrfwd.utils.logger import get_logger

logger = get_logger(__name__)

UNKNOWN_PORT = "<unknown>"


def socat_args(listen_port: str, connect_host: str, connect_port: str) -> list[str]:
    """socat arguments relaying a local TCP port to ``connect_host:connect_port``."""
    if ":" in connect_host:
        connect_host = f"[{connect_host}]"
    return [
        f"TCP-LISTEN:{listen_port},fork,reuseaddr",
        f"TCP-CONNECT:{connect_host}:{connect_port}",
    ]


async def remove_quietly(docker, container_id: str, name: str) -> None:
    """
    Force-remove a proxy container, bounded by the cleanup timeout.

    Failures are logged and swallowed; auto-remove and ``ctrfwd prune`` take
    care of whatever is left behind.
    """
    try:
        removed = await asyncio.wait_for(
            asyncio.to_thread(docker.remove_container, container_id, True),
            timeout=config.CLEANUP_TIMEOUT_SECONDS,
        )
        if not removed:
            logger.warning(f"Could not remove proxy container {name}")
    except asyncio.TimeoutError:
        logger.warning(
            f"Timed out removing proxy container {name} "
            f"after {config.CLEANUP_TIMEOUT_SECONDS}s"
        )
    except Exception as e:
        logger.warning(f"Failed to remove proxy container {name}: {e}")


async def kill_quietly(docker, container_id: str, name: str) -> None:
    """Kill a proxy container, bounded by the cleanup timeout."""
    try:
        killed = await asyncio.wait_for(
            asyncio.to_thread(docker.kill_container, container_id),
            timeout=config.CLEANUP_TIMEOUT_SECONDS,
        )
        if not killed:
            logger.warning(f"Could not kill proxy container {name}")
    except asyncio.TimeoutError:
        logger.warning(
            f"Timed out killing proxy container {name} "
            f"after {config.CLEANUP_TIMEOUT_SECONDS}s"
        )
    except Exception as e:
        logger.warning(f"Failed to kill proxy container {name}: {e}")


async def create_proxy(
    docker, image: str, name: str, command: list[str], **kwargs
) -> str:
    """
    Create a proxy container, even when the caller is cancelled meanwhile.

    The create call keeps running in its worker thread after a cancellation.
    Its container is then removed before the cancellation propagates, so it
    cannot outlive the generation.

    Returns:
        Id of the created container.

    Raises:
        DockerError: Creating the container failed.
    """
    creating = asyncio.ensure_future(
        asyncio.to_thread(docker.create_container, image, name, command, **kwargs)
    )
    try:
        return await asyncio.shield(creating)
    except asyncio.CancelledError:
        await _discard_created(docker, creating, name)
        raise


async def _discard_created(docker, creating: asyncio.Future, name: str) -> None:
    try:
        container_id = await asyncio.wait_for(
            creating, timeout=config.CLEANUP_TIMEOUT_SECONDS
        )
    except asyncio.TimeoutError:
        # Still creating; the runtime accepts the name in place of the id
        container_id = name
    except Exception as e:
        logger.debug(f"Creating proxy container {name} failed after cancellation: {e}")
        return
    await remove_quietly(docker, container_id, name)


class DirectForwarder:
    """
    Owns a single proxy container for one DirectPlan.

    Lifecycle: ``start()`` creates and starts the proxy and returns the host
    address it is published on, ``wait()`` blocks until the proxy dies and
    ``close()`` removes it. ``run()`` chains the three for the supervisor.
    """

    def __init__(
        self,
        docker,
        plan: DirectPlan,
        target_id: str,
        reporter: Reporter | None = None,
        image: str | None = None,
        role: ForwardingStrategy = ForwardingStrategy.DIRECT,
    ):
        self.docker = docker
        self.plan = plan
        self.target_id = target_id
        self.reporter = reporter
        self.image = image or config.FORWARDER_IMAGE
        self.role = role
        self.name = proxy_container_name()
        self.container_id: str | None = None
        self._waiter: asyncio.Future | None = None

    @property
    def description(self) -> str:
        if self.plan.spec is not None and self.plan.spec.raw:
            return self.plan.spec.raw
        return f"{self.plan.remote_ip}:{self.plan.remote_port}"

    async def start(self) -> tuple[str, str]:
        """
        Create and start the proxy container.

        Returns:
            ``(host, port)`` the forwarding is reachable on. The port is
            ``<unknown>`` when the runtime reports no binding.

        Raises:
            ForwarderError: Creating or starting the container failed.
        """
        plan = self.plan
        if plan.local_port:
            binding: tuple = (plan.local_host, int(plan.local_port))
        else:
            binding = (plan.local_host,)

        try:
            self.container_id = await create_proxy(
                self.docker,
                self.image,
                self.name,
                socat_args(plan.remote_port, plan.remote_ip, plan.remote_port),
                entrypoint=["socat"],
                ports={f"{plan.remote_port}/tcp": binding},
                network_mode=plan.target_network,
                auto_remove=True,
                labels=make_labels(self.target_id, self.role.value),
            )
            await asyncio.to_thread(self.docker.start_container, self.container_id)
        except DockerError as e:
            raise ForwarderError(str(e), self.description, self.name) from e

        self._waiter = watch_container(self.docker, self.container_id)

        if plan.local_port:
            return plan.local_host, plan.local_port

        bound = await asyncio.to_thread(
            self.docker.get_port_binding, self.container_id, plan.remote_port
        )
        if not bound or not bound[1]:
            logger.warning(
                f"Proxy {self.name} reports no host binding for "
                f"{plan.remote_port}/tcp"
            )
            return plan.local_host, UNKNOWN_PORT
        host_ip, host_port = bound
        return host_ip or plan.local_host, host_port

    async def wait(self) -> None:
        """
        Block until the proxy container stops.

        Never returns normally: the proxy stopping on its own, or the wait
        failing, is a forwarder failure.

        Raises:
            ForwarderError: Always, unless cancelled.
        """
        if self._waiter is None:
            raise ForwarderError("proxy was never started", self.description, self.name)
        try:
            status = await self._waiter
        except DockerError as e:
            await kill_quietly(self.docker, self.container_id, self.name)
            raise ForwarderError(str(e), self.description, self.name) from e
        raise ForwarderError(
            f"proxy container exited with status {status}", self.description, self.name
        )

    async def close(self) -> None:
        """Stop watching and remove the proxy container (best effort)."""
        if self._waiter is not None and not self._waiter.done():
            self._waiter.cancel()
        if self.container_id is not None:
            await remove_quietly(self.docker, self.container_id, self.name)
            self.container_id = None

    async def run(self) -> None:
        """Start, report, and hold the forwarding until failure or cancellation."""
        try:
            host, port = await self.start()
            forwarding = Forwarding(
                local_host=host,
                local_port=port,
                remote_host=self.plan.remote_ip,
                remote_port=self.plan.remote_port,
            )
            logger.debug(f"{self.name}: {forwarding.describe()}")
            if self.reporter is not None:
                self.reporter.forwarding(forwarding)
            await self.wait()
        finally:
            await self.close()
