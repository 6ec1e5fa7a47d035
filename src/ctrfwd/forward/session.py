"""
Target lifecycle loop.

A session keeps a set of forwardings alive for one target container. Each
generation resolves the forwardings against a fresh snapshot of the target
and runs them under a ForwarderSupervisor until one of:

    - a forwarder fails           -> the error propagates (fatal)
    - the target stops running    -> tear down, then exit or wait for the
                                     target to run again and loop
    - the stop token is set       -> tear down and return (graceful)

Generations never overlap: a generation's proxies are gone before the next
generation creates any.
"""

import asyncio
import random
from enum import Enum

from ctrfwd.config import config
from ctrfwd.docker.exceptions import ContainerNotFoundError, ImagePullError
from ctrfwd.forward.exceptions import ForwardersFailedError, TargetNotRunningError
from ctrfwd.forward.report import Reporter
from ctrfwd.forward.strategy import resolve_plans
from ctrfwd.forward.supervisor import ForwarderSupervisor
from ctrfwd.forward.watch import watch_container
from ctrfwd.models.forwarding import ForwardingPlan
from ctrfwd.models.target import Target
from ctrfwd.utils.logger import get_logger

logger = get_logger(__name__)


class GenerationEnd(str, Enum):
    """Why a generation ended without an error."""

    TARGET_EXITED = "target_exited"
    STOPPED = "stopped"


def format_duration(seconds: float) -> str:
    """Format seconds as a short duration string (``10s``, ``1.5s``)."""
    if seconds == int(seconds):
        return f"{int(seconds)}s"
    return f"{seconds:g}s"


class ForwardingSession:
    """
    Keeps forwardings to one target alive across target restarts.

    Args:
        docker: DockerManager (or compatible runtime).
        target_ref: Target container name or id.
        specs: Raw ``-L`` specifications.
        stop: Root stop token; setting it ends the session gracefully.
        reporter: Output for progress and forwarding lines.
        running_timeout: Seconds to wait for the target to (re)start. Zero
            ends the session as soon as the target stops.
        poll_interval: Seconds between target inspections while waiting.
        image: Forwarder image.
        pull: Pull the forwarder image before the first generation.
        rng: Random source for sidecar ports.
    """

    def __init__(
        self,
        docker,
        target_ref: str,
        specs: list[str],
        stop: asyncio.Event,
        reporter: Reporter | None = None,
        running_timeout: float | None = None,
        poll_interval: float | None = None,
        image: str | None = None,
        pull: bool = True,
        rng: random.Random | None = None,
    ):
        self.docker = docker
        self.target_ref = target_ref
        self.specs = list(specs)
        self.stop = stop
        self.reporter = reporter or Reporter()
        self.running_timeout = (
            config.RUNNING_TIMEOUT_SECONDS if running_timeout is None else running_timeout
        )
        self.poll_interval = (
            config.RESTART_POLL_INTERVAL_SECONDS if poll_interval is None else poll_interval
        )
        self.image = image or config.FORWARDER_IMAGE
        self.pull = pull
        self.rng = rng
        self.generations = 0

    # =========================================================================
    # Main Loop
    # =========================================================================

    async def run(self) -> None:
        """
        Run until the stop token is set or the target is gone for good.

        Raises:
            ForwardError: Bad specs, forwarder failure, or the target not
                coming back in time.
            DockerError: The target cannot be inspected.
        """
        target = await self._acquire_target()
        if target is None:
            return
        plans = resolve_plans(self.specs, target)

        if self.pull:
            await self._pull_image()

        while True:
            if self.stop.is_set():
                break

            end = await self._run_generation(target, plans)
            if end == GenerationEnd.STOPPED or self.running_timeout <= 0:
                break

            self.reporter.status(
                f"Giving target {format_duration(self.running_timeout)} "
                "to get up and running again..."
            )
            target = await self._wait_running()
            if target is None:
                break
            plans = resolve_plans(self.specs, target)

        self.reporter.status("Forwarding's done. Exiting...")

    async def _run_generation(
        self, target: Target, plans: list[ForwardingPlan]
    ) -> GenerationEnd:
        self.generations += 1
        logger.debug(
            f"Generation {self.generations}: {len(plans)} forwardings "
            f"to {target.name} ({target.id[:12]})"
        )

        supervisor = ForwarderSupervisor(
            self.docker,
            target,
            plans,
            reporter=self.reporter,
            image=self.image,
            rng=self.rng,
        )
        supervising = asyncio.create_task(supervisor.run())
        target_exit = watch_container(self.docker, target.id)
        stopping = asyncio.create_task(self.stop.wait())

        try:
            done, _ = await asyncio.wait(
                {supervising, target_exit, stopping},
                return_when=asyncio.FIRST_COMPLETED,
            )

            if supervising in done:
                error = supervising.exception() or ForwardersFailedError([])
                # Proxies sharing the target's namespace die with it
                if not await self._target_gone(target_exit):
                    raise error
                logger.debug(f"Forwarders failed while target stopped: {error}")
                self.reporter.status("Target exited")
                self.reporter.status("Stopping the forwarders...")
                return GenerationEnd.TARGET_EXITED

            if stopping in done:
                self.reporter.status("Stopping the forwarders...")
                return GenerationEnd.STOPPED

            if target_exit.exception() is not None:
                logger.debug(f"Waiting for target failed: {target_exit.exception()}")
            self.reporter.status("Target exited")
            self.reporter.status("Stopping the forwarders...")
            return GenerationEnd.TARGET_EXITED

        finally:
            stopping.cancel()
            if not target_exit.done():
                target_exit.cancel()
            elif not target_exit.cancelled():
                target_exit.exception()
            supervising.cancel()
            await asyncio.gather(supervising, stopping, return_exceptions=True)

    # =========================================================================
    # Target Acquisition
    # =========================================================================

    async def _inspect(self) -> Target:
        attrs = await asyncio.to_thread(self.docker.inspect_container, self.target_ref)
        return Target.from_attrs(self.target_ref, attrs)

    async def _acquire_target(self) -> Target | None:
        target = await self._inspect()
        if target.running:
            return target
        if self.running_timeout <= 0:
            raise TargetNotRunningError(self.target_ref, format_duration(0))
        self.reporter.status(
            f"Giving target {format_duration(self.running_timeout)} "
            "to get up and running..."
        )
        return await self._wait_running()

    async def _wait_running(self) -> Target | None:
        """
        Poll until the target runs again.

        Returns:
            Fresh snapshot of the running target, or None if the stop token
            was set meanwhile.

        Raises:
            TargetNotRunningError: Not running within the running timeout.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.running_timeout

        while True:
            try:
                target = await self._inspect()
                if target.running:
                    logger.debug(f"Target {target.name} is running again")
                    return target
            except ContainerNotFoundError:
                logger.debug(f"Target {self.target_ref} not found, still waiting")

            remaining = deadline - loop.time()
            if remaining <= 0:
                raise TargetNotRunningError(
                    self.target_ref, format_duration(self.running_timeout)
                )
            try:
                await asyncio.wait_for(
                    self.stop.wait(), timeout=min(self.poll_interval, remaining)
                )
                return None
            except asyncio.TimeoutError:
                pass

    async def _target_gone(self, target_exit: asyncio.Future) -> bool:
        if target_exit.done():
            return True
        try:
            target = await self._inspect()
        except ContainerNotFoundError:
            return True
        return not target.running

    async def _pull_image(self) -> None:
        self.reporter.status("Pulling forwarder image...")
        try:
            await asyncio.to_thread(self.docker.pull_image, self.image)
        except ImagePullError as e:
            if not await asyncio.to_thread(self.docker.image_exists, self.image):
                raise
            logger.warning(f"{e}; using the local copy")
