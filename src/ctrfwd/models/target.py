"""Snapshot of the container whose network is being forwarded into."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping


@dataclass(frozen=True)
class NetworkAttachment:
    """One network the target is attached to."""

    name: str
    ip: str  # Empty when the attachment has no address (e.g. "none", "host")
    aliases: tuple[str, ...] = ()


@dataclass(frozen=True)
class Target:
    """
    Immutable view of a target container at one point in time.

    A fresh snapshot is taken at the start of every forwarding generation;
    snapshots are replaced, never updated.
    """

    ref: str  # Reference given by the user (name or id)
    id: str
    name: str
    running: bool
    networks: Mapping[str, NetworkAttachment] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @classmethod
    def from_attrs(cls, ref: str, attrs: dict) -> Target:
        """
        Build a snapshot from a docker inspect document.

        Args:
            ref: Reference the container was inspected by.
            attrs: ``docker inspect`` output for the container.
        """
        settings = attrs.get("NetworkSettings") or {}
        networks: dict[str, NetworkAttachment] = {}
        for net_name, net in (settings.get("Networks") or {}).items():
            net = net or {}
            aliases: list[str] = []
            for alias in (net.get("Aliases") or []) + (net.get("DNSNames") or []):
                if alias and alias not in aliases:
                    aliases.append(alias)
            networks[net_name] = NetworkAttachment(
                name=net_name,
                ip=net.get("IPAddress") or "",
                aliases=tuple(aliases),
            )

        return cls(
            ref=ref,
            id=attrs.get("Id", ""),
            name=(attrs.get("Name") or "").lstrip("/"),
            running=bool((attrs.get("State") or {}).get("Running")),
            networks=MappingProxyType(networks),
        )

    def attachments(self) -> list[NetworkAttachment]:
        """Network attachments in lexicographic order of network name."""
        return [self.networks[name] for name in sorted(self.networks)]

    def addressed_attachments(self) -> list[NetworkAttachment]:
        """Attachments that carry an IP address, in lexicographic order."""
        return [net for net in self.attachments() if net.ip]
