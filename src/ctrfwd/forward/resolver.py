"""
Target network resolution.

Lookups over a target's network attachments. Attachments are always visited
in lexicographic order of network name, so the first match is reproducible
when several attachments could satisfy a lookup.
"""

from ctrfwd.forward.exceptions import (
    AmbiguousTargetError,
    CannotResolveHostError,
    NoAddressError,
)
from ctrfwd.models.target import Target


def unambiguous_ip(target: Target) -> str:
    """
    The target's only IP address.

    Raises:
        NoAddressError: No attachment has an IP.
        AmbiguousTargetError: More than one attachment has an IP.
    """
    ips = [net.ip for net in target.addressed_attachments()]
    if not ips:
        raise NoAddressError(target.ref)
    if len(ips) > 1:
        raise AmbiguousTargetError(target.ref, ips)
    return ips[0]


def lookup_host(target: Target, name: str) -> str:
    """
    Resolve ``name`` to one of the target's IPs.

    ``name`` may be an IP of the target, one of its aliases on a network, or
    the name of a network it is attached to.

    Raises:
        CannotResolveHostError: Nothing matches.
    """
    for net in target.addressed_attachments():
        if name == net.ip or name == net.name or name in net.aliases:
            return net.ip
    raise CannotResolveHostError(target.ref, name)


def network_for_ip(target: Target, ip: str) -> str:
    """
    Name of the attachment owning ``ip``.

    Raises:
        CannotResolveHostError: No attachment has this IP.
    """
    for net in target.addressed_attachments():
        if net.ip == ip:
            return net.name
    raise CannotResolveHostError(target.ref, ip)
