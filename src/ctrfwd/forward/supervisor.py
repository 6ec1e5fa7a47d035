"""
Forwarder supervision for one generation.

All forwarders of a generation run concurrently. The first failure stops the
whole generation: the remaining forwarders are cancelled and cleaned up, and
a single ForwardersFailedError carrying every individual error is raised.
"""

import asyncio
import random

from ctrfwd.forward.direct import DirectForwarder
from ctrfwd.forward.exceptions import ForwardersFailedError
from ctrfwd.forward.report import Reporter
from ctrfwd.forward.sidecar import SidecarForwarder
from ctrfwd.models.enums import ForwardingStrategy
from ctrfwd.models.forwarding import ForwardingPlan
from ctrfwd.models.target import Target
from ctrfwd.utils.logger import format_traceback, get_logger

logger = get_logger(__name__)


class ForwarderSupervisor:
    """
    Runs the forwarders of one generation.

    Attributes:
        target: Target snapshot the plans were resolved against.
        forwarders: One Direct- or SidecarForwarder per plan.
    """

    def __init__(
        self,
        docker,
        target: Target,
        plans: list[ForwardingPlan],
        reporter: Reporter | None = None,
        image: str | None = None,
        rng: random.Random | None = None,
    ):
        if not plans:
            raise ValueError("a generation needs at least one forwarding")
        self.target = target
        self.forwarders: list[DirectForwarder | SidecarForwarder] = []
        for plan in plans:
            if plan.strategy == ForwardingStrategy.DIRECT:
                forwarder = DirectForwarder(
                    docker, plan, target.id, reporter=reporter, image=image
                )
            else:
                forwarder = SidecarForwarder(
                    docker, plan, reporter=reporter, image=image, rng=rng
                )
            self.forwarders.append(forwarder)

    async def run(self) -> None:
        """
        Run every forwarder until one fails or this task is cancelled.

        Raises:
            ForwardersFailedError: At least one forwarder failed. All of
                them have been torn down by then.
        """
        tasks = [asyncio.create_task(fwd.run()) for fwd in self.forwarders]
        logger.debug(f"Started {len(tasks)} forwarders for {self.target.name}")

        try:
            await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        finally:
            for task in tasks:
                task.cancel()
            results = await asyncio.gather(*tasks, return_exceptions=True)
            logger.debug(f"All forwarders for {self.target.name} stopped")

        errors = [r for r in results if isinstance(r, Exception)]
        for error in errors:
            logger.debug(f"Forwarder failed:\n{format_traceback(error)}")
        if errors:
            raise ForwardersFailedError(errors)
