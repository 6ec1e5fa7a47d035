"""
Forwarding strategy selection.

A forwarding goes Direct when its remote endpoint is reachable through one of
the target's own network attachments: one proxy on that network is enough.
Anything else (the target's loopback, addresses routed only from inside the
target) goes through a Sidecar that joins the target's network namespace.
"""

from ctrfwd.config import config
from ctrfwd.forward.exceptions import CannotResolveHostError, NoAddressError
from ctrfwd.forward.parser import parse_forwardings
from ctrfwd.forward.resolver import lookup_host, network_for_ip, unambiguous_ip
from ctrfwd.models.forwarding import (
    DirectPlan,
    ForwardingPlan,
    ForwardingSpec,
    SidecarPlan,
)
from ctrfwd.models.target import Target
from ctrfwd.utils.logger import get_logger

logger = get_logger(__name__)


def select_plan(spec: ForwardingSpec, target: Target) -> ForwardingPlan:
    """
    Resolve one spec against a target snapshot.

    Raises:
        TargetResolutionError: The target has no usable address.
    """
    local_host = spec.local_host or config.DEFAULT_LOCAL_HOST

    if not spec.remote_host:
        remote_ip = unambiguous_ip(target)
    else:
        try:
            remote_ip = lookup_host(target, spec.remote_host)
        except CannotResolveHostError:
            remote_ip = ""

    if remote_ip:
        plan = DirectPlan(
            local_host=local_host,
            local_port=spec.local_port,
            remote_ip=remote_ip,
            remote_port=spec.remote_port,
            target_network=network_for_ip(target, remote_ip),
            spec=spec,
        )
        logger.debug(f"{spec.raw}: direct via network {plan.target_network}")
        return plan

    addressed = target.addressed_attachments()
    if not addressed:
        raise NoAddressError(target.ref)
    hop = addressed[0]

    logger.debug(
        f"{spec.raw}: {spec.remote_host} not visible on the target's networks, "
        f"using a sidecar behind {hop.ip} ({hop.name})"
    )
    return SidecarPlan(
        local_host=local_host,
        local_port=spec.local_port,
        remote_host=spec.remote_host,
        remote_port=spec.remote_port,
        target_container_id=target.id,
        target_network=hop.name,
        target_host=hop.ip,
        spec=spec,
    )


def resolve_plans(raw_specs: list[str], target: Target) -> list[ForwardingPlan]:
    """
    Parse and resolve every forwarding for one generation.

    All specs are resolved before anything is started, so a single bad spec
    prevents the whole set from starting.
    """
    specs = parse_forwardings(raw_specs, target)
    return [select_plan(spec, target) for spec in specs]
