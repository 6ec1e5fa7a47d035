"""
Port-forwarding exception classes.

Spec and resolution errors are raised before any proxy container exists.
Forwarder errors are raised from inside a running generation and end up
aggregated in ForwardersFailedError.
"""


class ForwardError(Exception):
    """Base exception for port forwarding."""

    pass


# =============================================================================
# Spec Errors
# =============================================================================


class ForwardingSpecError(ForwardError):
    """Invalid forwarding specification."""

    reason = "invalid forwarding"

    def __init__(self, spec: str, detail: str = ""):
        self.spec = spec
        message = f"{self.reason} {spec!r}"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class MalformedSpecError(ForwardingSpecError):
    reason = "malformed forwarding"


class BadLocalPortError(ForwardingSpecError):
    reason = "bad local port in forwarding"


class BadRemotePortError(ForwardingSpecError):
    reason = "bad remote port in forwarding"


class BadRemoteHostError(ForwardingSpecError):
    reason = "bad remote host in forwarding"


# =============================================================================
# Resolution Errors
# =============================================================================


class TargetResolutionError(ForwardError):
    """Target's network attachments cannot satisfy a forwarding."""

    pass


class AmbiguousTargetError(TargetResolutionError):
    """Target has more than one IP and no remote host was given."""

    def __init__(self, target: str, ips: list[str]):
        self.target = target
        self.ips = ips
        super().__init__(
            f"target {target} has more than one IP address ({', '.join(ips)}); "
            "specify the remote host explicitly"
        )


class NoAddressError(TargetResolutionError):
    """Target has no IP address on any network."""

    def __init__(self, target: str):
        self.target = target
        super().__init__(f"target {target} has no IP address")


class CannotResolveHostError(TargetResolutionError):
    """Remote host matches none of the target's addresses, aliases or networks."""

    def __init__(self, target: str, host: str):
        self.target = target
        self.host = host
        super().__init__(f"cannot resolve {host!r} against target {target}")


# =============================================================================
# Runtime Errors
# =============================================================================


class ForwarderError(ForwardError):
    """A single forwarder failed to start or stopped on its own."""

    def __init__(self, message: str, forwarding: str, container: str = ""):
        self.forwarding = forwarding
        self.container = container
        where = f"forwarding {forwarding!r}"
        if container:
            where += f" (container {container})"
        super().__init__(f"{where}: {message}")


class ForwardersFailedError(ForwardError):
    """One or more forwarders of a generation failed."""

    def __init__(self, errors: list[BaseException]):
        self.errors = errors
        super().__init__("one or more forwarders failed")


class TargetNotRunningError(ForwardError):
    """Target did not (re)enter the running state in time."""

    def __init__(self, target: str, timeout: str):
        self.target = target
        self.timeout = timeout
        super().__init__(f"target {target} is not running after {timeout}")
