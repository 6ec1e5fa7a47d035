"""
Forwarding address grammar.

Accepted forms (ssh -L style)::

    REMOTE_PORT
    LOCAL_PORT:REMOTE_PORT
    REMOTE_HOST:REMOTE_PORT
    LOCAL_PORT:REMOTE_HOST:REMOTE_PORT
    LOCAL_HOST:LOCAL_PORT:REMOTE_PORT
    LOCAL_HOST:LOCAL_PORT:REMOTE_HOST:REMOTE_PORT

Forms with two or three parts are told apart by whether the first part is a
port number. Whenever the remote host is omitted the target must have exactly
one IP address, since that address becomes the remote host.
"""

from ctrfwd.forward.exceptions import (
    BadLocalPortError,
    BadRemoteHostError,
    BadRemotePortError,
    MalformedSpecError,
)
from ctrfwd.forward.resolver import unambiguous_ip
from ctrfwd.models.forwarding import ForwardingSpec
from ctrfwd.models.target import Target


def is_valid_port(value: str) -> bool:
    """True for a decimal TCP port number in 1-65535."""
    if not value or not value.isascii() or not value.isdigit():
        return False
    return 1 <= int(value) <= 65535


def parse_forwarding(spec: str, target: Target) -> ForwardingSpec:
    """
    Parse one forwarding specification.

    Args:
        spec: The ``-L`` value.
        target: Current target snapshot, used to validate forms without a
            remote host.

    Returns:
        The normalized ForwardingSpec.

    Raises:
        ForwardingSpecError: Malformed spec or bad port/host.
        TargetResolutionError: Remote host omitted but the target does not
            have exactly one IP.
    """
    parts = spec.split(":")
    local_host = local_port = remote_host = ""

    match len(parts):
        case 1:
            remote_port = parts[0]

        case 2 if is_valid_port(parts[0]):
            local_port, remote_port = parts

        case 2:
            remote_host, remote_port = parts

        case 3 if is_valid_port(parts[0]):
            local_port, remote_host, remote_port = parts
            if not remote_host:
                raise BadRemoteHostError(spec, "remote host is empty")

        case 3:
            local_host, local_port, remote_port = parts

        case 4:
            local_host, local_port, remote_host, remote_port = parts

        case _:
            raise MalformedSpecError(spec, "expected 1 to 4 colon-separated parts")

    if local_port and not is_valid_port(local_port):
        raise BadLocalPortError(spec, f"{local_port!r} is not a valid port")
    if not is_valid_port(remote_port):
        raise BadRemotePortError(spec, f"{remote_port!r} is not a valid port")

    if not remote_host:
        unambiguous_ip(target)

    return ForwardingSpec(
        local_host=local_host,
        local_port=local_port,
        remote_host=remote_host,
        remote_port=remote_port,
        raw=spec,
    )


def parse_forwardings(specs: list[str], target: Target) -> list[ForwardingSpec]:
    """Parse all specifications, failing on the first invalid one."""
    return [parse_forwarding(spec, target) for spec in specs]
