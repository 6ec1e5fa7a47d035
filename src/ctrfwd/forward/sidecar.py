"""
Sidecar forwarder.

Reaches endpoints that only exist from inside the target, such as services
bound to the target's loopback. Two proxies are chained:

    host:LOCAL_PORT -> outer proxy (target's network)
                    -> TARGET_IP:SIDECAR_PORT -> inner proxy (target's netns)
                    -> REMOTE_HOST:REMOTE_PORT

The inner proxy shares the target's network namespace, so its listening
port must not clash with the target's own listeners. The port is drawn at
random from a configured range and is not checked for collisions.
"""

import asyncio
import random

from ctrfwd.config import config
from ctrfwd.docker.exceptions import DockerError
from ctrfwd.docker.naming import make_labels, proxy_container_name
from ctrfwd.forward.direct import (
    DirectForwarder,
    create_proxy,
    kill_quietly,
    remove_quietly,
    socat_args,
)
from ctrfwd.forward.exceptions import ForwarderError
from ctrfwd.forward.report import Reporter
from ctrfwd.forward.watch import watch_container
from ctrfwd.models.enums import ForwardingStrategy
from ctrfwd.models.forwarding import DirectPlan, Forwarding, SidecarPlan
from ctrfwd.utils.logger import get_logger

logger = get_logger(__name__)

_rng = random.Random()


def pick_sidecar_port(rng: random.Random | None = None) -> str:
    """Draw a candidate port for the inner proxy from the configured range."""
    rng = rng or _rng
    return str(rng.randint(config.SIDECAR_PORT_MIN, config.SIDECAR_PORT_MAX))


class SidecarForwarder:
    """
    Owns the inner proxy container and the outer DirectForwarder.

    Both legs are torn down together by ``close()``.
    """

    def __init__(
        self,
        docker,
        plan: SidecarPlan,
        reporter: Reporter | None = None,
        image: str | None = None,
        rng: random.Random | None = None,
    ):
        self.docker = docker
        self.plan = plan
        self.reporter = reporter
        self.image = image or config.FORWARDER_IMAGE
        self.rng = rng
        self.inner_name = proxy_container_name()
        self.inner_id: str | None = None
        self.outer: DirectForwarder | None = None
        self._inner_waiter: asyncio.Future | None = None

    @property
    def description(self) -> str:
        if self.plan.spec is not None and self.plan.spec.raw:
            return self.plan.spec.raw
        return f"{self.plan.remote_host}:{self.plan.remote_port}"

    async def _start_inner(self) -> str:
        plan = self.plan
        port = pick_sidecar_port(self.rng)
        try:
            self.inner_id = await create_proxy(
                self.docker,
                self.image,
                self.inner_name,
                socat_args(port, plan.remote_host, plan.remote_port),
                entrypoint=["socat"],
                network_mode=f"container:{plan.target_container_id}",
                auto_remove=True,
                labels=make_labels(
                    plan.target_container_id, ForwardingStrategy.SIDECAR.value
                ),
            )
            await asyncio.to_thread(self.docker.start_container, self.inner_id)
        except DockerError as e:
            raise ForwarderError(str(e), self.description, self.inner_name) from e

        self._inner_waiter = watch_container(self.docker, self.inner_id)
        logger.debug(
            f"Inner proxy {self.inner_name} listening on {port} inside "
            f"{plan.target_container_id[:12]}"
        )
        return port

    async def start(self) -> Forwarding:
        """
        Start the inner proxy, then the outer leg pointing at it.

        Raises:
            ForwarderError: Either leg failed to start.
        """
        plan = self.plan
        plan.sidecar_port = await self._start_inner()

        self.outer = DirectForwarder(
            self.docker,
            DirectPlan(
                local_host=plan.local_host,
                local_port=plan.local_port,
                remote_ip=plan.target_host,
                remote_port=plan.sidecar_port,
                target_network=plan.target_network,
                spec=plan.spec,
            ),
            plan.target_container_id,
            image=self.image,
            role=ForwardingStrategy.SIDECAR,
        )
        host, port = await self.outer.start()

        return Forwarding(
            local_host=host,
            local_port=port,
            remote_host=plan.remote_host,
            remote_port=plan.remote_port,
            sidecar_host=plan.target_host,
            sidecar_port=plan.sidecar_port,
        )

    async def _wait_inner(self) -> None:
        try:
            status = await self._inner_waiter
        except DockerError as e:
            await kill_quietly(self.docker, self.inner_id, self.inner_name)
            raise ForwarderError(str(e), self.description, self.inner_name) from e
        raise ForwarderError(
            f"inner proxy exited with status {status}",
            self.description,
            self.inner_name,
        )

    async def wait(self) -> None:
        """
        Block until either leg stops.

        Raises:
            ForwarderError: Always, unless cancelled.
        """
        legs = [
            asyncio.ensure_future(self._wait_inner()),
            asyncio.ensure_future(self.outer.wait()),
        ]
        try:
            done, _ = await asyncio.wait(legs, return_when=asyncio.FIRST_COMPLETED)
            done.pop().result()
        finally:
            for leg in legs:
                leg.cancel()
            await asyncio.gather(*legs, return_exceptions=True)

    async def close(self) -> None:
        """Tear down the outer leg, then the inner proxy (best effort)."""
        if self.outer is not None:
            await self.outer.close()
        if self._inner_waiter is not None and not self._inner_waiter.done():
            self._inner_waiter.cancel()
        if self.inner_id is not None:
            await remove_quietly(self.docker, self.inner_id, self.inner_name)
            self.inner_id = None

    async def run(self) -> None:
        """Start, report, and hold the forwarding until failure or cancellation."""
        try:
            forwarding = await self.start()
            logger.debug(f"{self.inner_name}: {forwarding.describe()}")
            if self.reporter is not None:
                self.reporter.forwarding(forwarding)
            await self.wait()
        finally:
            await self.close()
