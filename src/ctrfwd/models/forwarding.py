"""
Forwarding data models.

Contents:
    - ForwardingSpec: parsed ``-L`` value, fixed for the command's lifetime
    - DirectPlan / SidecarPlan: per-generation resolved plans
    - Forwarding: pydantic record of an established forwarding, used for the
      text and JSON output lines
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ctrfwd.models.enums import ForwardingStrategy


# =============================================================================
# Specs and Plans
# =============================================================================


@dataclass(frozen=True)
class ForwardingSpec:
    """
    Normalized forwarding request.

    ``local_host`` empty means the default local host, ``local_port`` empty
    means a runtime-assigned port and ``remote_host`` empty means the target's
    single unambiguous IP.
    """

    local_host: str
    local_port: str
    remote_host: str
    remote_port: str
    raw: str = ""


@dataclass(frozen=True)
class DirectPlan:
    """Forwarding realized by one proxy on one of the target's networks."""

    local_host: str
    local_port: str
    remote_ip: str
    remote_port: str
    target_network: str
    spec: ForwardingSpec | None = None

    strategy = ForwardingStrategy.DIRECT


@dataclass
class SidecarPlan:
    """
    Forwarding realized through the target's own network namespace.

    ``sidecar_port`` stays empty until the inner proxy has been started.
    """

    local_host: str
    local_port: str
    remote_host: str
    remote_port: str
    target_container_id: str
    target_network: str
    target_host: str
    sidecar_port: str = ""
    spec: ForwardingSpec | None = None

    strategy = ForwardingStrategy.SIDECAR


ForwardingPlan = DirectPlan | SidecarPlan


# =============================================================================
# Report Record
# =============================================================================


class Forwarding(BaseModel):
    """An established forwarding, as reported to the user."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    local_host: str
    local_port: str
    remote_host: str
    remote_port: str
    sidecar_host: str | None = None
    sidecar_port: str | None = None

    def describe(self) -> str:
        """Human readable one-line description."""
        line = (
            f"Forwarding {self.local_host}:{self.local_port} "
            f"to {self.remote_host}:{self.remote_port}"
        )
        if self.sidecar_host is not None:
            line += f" through {self.sidecar_host}:{self.sidecar_port}"
        return line

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)
