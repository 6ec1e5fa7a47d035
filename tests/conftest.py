"""
Shared fixtures: an in-memory Docker runtime.

FakeDocker implements the DockerManager surface the forwarding engine uses.
``wait_container`` really blocks (on a threading.Event), so the engine's
wait threads and cancellation paths run exactly as against a daemon.
"""

from __future__ import annotations

import asyncio
import itertools
import threading
import time
from dataclasses import dataclass, field

import pytest

from ctrfwd.config import config
from ctrfwd.docker.exceptions import (
    ContainerCreationError,
    ContainerNotFoundError,
    ContainerStartError,
    ContainerWaitError,
)
from ctrfwd.docker.naming import LABEL_MANAGED, LABEL_TARGET
from ctrfwd.models.target import Target

WAIT_SAFETY_TIMEOUT = 30.0


def target_attrs(
    networks: dict[str, str | tuple[str, list[str]]],
    name: str = "web",
    container_id: str = "a" * 64,
    running: bool = True,
) -> dict:
    """
    Minimal ``docker inspect`` document.

    ``networks`` maps network name to an IP, or to ``(ip, aliases)``.
    """
    nets = {}
    for net_name, value in networks.items():
        ip, aliases = (value, []) if isinstance(value, str) else value
        nets[net_name] = {"IPAddress": ip, "Aliases": aliases}
    return {
        "Id": container_id,
        "Name": f"/{name}",
        "State": {"Running": running},
        "NetworkSettings": {"Networks": nets, "Ports": {}},
    }


def make_target(networks: dict, **kwargs) -> Target:
    return Target.from_attrs(kwargs.get("name", "web"), target_attrs(networks, **kwargs))


@dataclass
class FakeContainer:
    id: str
    name: str
    image: str = ""
    command: list[str] = field(default_factory=list)
    entrypoint: list[str] | None = None
    ports: dict | None = None
    network_mode: str | None = None
    auto_remove: bool = False
    labels: dict[str, str] = field(default_factory=dict)
    networks: dict = field(default_factory=dict)
    running: bool = False
    removed: bool = False
    exit_code: int = 0
    wait_error: str = ""
    bindings: dict = field(default_factory=dict)
    stopped: threading.Event = field(default_factory=threading.Event)

    @property
    def is_proxy(self) -> bool:
        return self.labels.get(LABEL_MANAGED) == "true"


class FakeDocker:
    """In-memory stand-in for DockerManager."""

    def __init__(self):
        self.lock = threading.Lock()
        self.containers: dict[str, FakeContainer] = {}
        self.pulled: list[str] = []
        self.images: set[str] = set()
        self.pull_error: Exception | None = None
        self.assign_ports = True
        self.fail_create: set[int] = set()  # 1-based create call numbers
        self.start_gate: threading.Event | None = None
        self.gate_after = 0  # starts allowed before the gate applies
        self.create_gate: threading.Event | None = None
        self.create_calls = 0  # create calls entered, gated or not
        self.kill_delay = 0.0
        self.starts = 0
        self.creates = 0
        self._ids = itertools.count(1)
        self._host_ports = itertools.count(32768)

    # -------------------------------------------------------------------------
    # Test helpers
    # -------------------------------------------------------------------------

    def add_target(self, networks: dict, name: str = "web", running: bool = True):
        attrs = target_attrs(networks, name=name, container_id=f"{name:x<64}"[:64])
        container = FakeContainer(
            id=attrs["Id"],
            name=name,
            networks=attrs["NetworkSettings"]["Networks"],
            running=running,
        )
        self.containers[container.id] = container
        return container

    def stop(self, ref: str, exit_code: int = 0, wait_error: str = "") -> None:
        """Make a container exit."""
        with self.lock:
            container = self._find(ref)
            if container is None or not container.running:
                return
            self._stop_locked(container, exit_code, wait_error)

    def restart(self, ref: str) -> None:
        with self.lock:
            container = self._find(ref)
            container.stopped = threading.Event()
            container.running = True

    def proxies(self) -> list[FakeContainer]:
        return [c for c in self.containers.values() if c.is_proxy]

    def live_proxies(self) -> list[FakeContainer]:
        return [c for c in self.proxies() if not c.removed]

    def running_proxies(self) -> list[FakeContainer]:
        return [c for c in self.live_proxies() if c.running]

    def _find(self, ref: str) -> FakeContainer | None:
        if ref in self.containers:
            return self.containers[ref]
        for container in self.containers.values():
            if container.name == ref:
                return container
        return None

    def _stop_locked(self, container: FakeContainer, exit_code: int, wait_error: str = ""):
        container.running = False
        container.exit_code = exit_code
        container.wait_error = wait_error
        if container.auto_remove:
            container.removed = True
        container.stopped.set()
        # Containers sharing this one's network namespace lose their network
        for other in self.containers.values():
            if other.network_mode == f"container:{container.id}" and other.running:
                self._stop_locked(other, 1)

    # -------------------------------------------------------------------------
    # DockerManager surface
    # -------------------------------------------------------------------------

    def inspect_container(self, ref: str) -> dict:
        with self.lock:
            container = self._find(ref)
            if container is None or container.removed:
                raise ContainerNotFoundError(ref)
            return {
                "Id": container.id,
                "Name": f"/{container.name}",
                "State": {"Running": container.running},
                "NetworkSettings": {
                    "Networks": container.networks,
                    "Ports": dict(container.bindings),
                },
            }

    def create_container(
        self,
        image,
        name,
        command,
        entrypoint=None,
        ports=None,
        network_mode=None,
        auto_remove=True,
        labels=None,
    ) -> str:
        with self.lock:
            self.create_calls += 1
        if self.create_gate is not None:
            self.create_gate.wait(WAIT_SAFETY_TIMEOUT)
        with self.lock:
            self.creates += 1
            if self.creates in self.fail_create:
                raise ContainerCreationError("no such network", name)
            container_id = f"{next(self._ids):064x}"
            self.containers[container_id] = FakeContainer(
                id=container_id,
                name=name,
                image=image,
                command=list(command),
                entrypoint=entrypoint,
                ports=ports,
                network_mode=network_mode,
                auto_remove=auto_remove,
                labels=dict(labels or {}),
            )
            return container_id

    def start_container(self, container_id: str) -> None:
        with self.lock:
            self.starts += 1
            gated = self.start_gate is not None and self.starts > self.gate_after
        if gated:
            self.start_gate.wait(WAIT_SAFETY_TIMEOUT)
        with self.lock:
            container = self.containers[container_id]
            if container.removed:
                raise ContainerStartError("container removed", container_id)
            container.running = True
            for key, binding in (container.ports or {}).items():
                if not self.assign_ports:
                    container.bindings[key] = []
                    continue
                host_ip = binding[0]
                host_port = binding[1] if len(binding) > 1 else next(self._host_ports)
                container.bindings[key] = [
                    {"HostIp": host_ip, "HostPort": str(host_port)}
                ]

    def wait_container(self, container_id: str, condition: str = "not-running") -> int:
        with self.lock:
            container = self.containers[container_id]
            event = container.stopped
        if not event.wait(WAIT_SAFETY_TIMEOUT):
            return -1
        if container.wait_error:
            raise ContainerWaitError(container.wait_error, container_id)
        return container.exit_code

    def kill_container(self, container_id: str, signal: str = "SIGKILL") -> bool:
        if self.kill_delay:
            time.sleep(self.kill_delay)
        with self.lock:
            container = self.containers.get(container_id)
            if container is not None and container.running:
                self._stop_locked(container, 137)
        return True

    def remove_container(self, container_id: str, force: bool = True) -> bool:
        with self.lock:
            container = self._find(container_id)
            if container is None:
                return True
            if container.running:
                self._stop_locked(container, 137)
            container.removed = True
        return True

    def get_port_binding(self, container_id: str, container_port) -> tuple[str, str] | None:
        with self.lock:
            bindings = self.containers[container_id].bindings.get(f"{container_port}/tcp")
        if not bindings:
            return None
        return bindings[0]["HostIp"], bindings[0]["HostPort"]

    def pull_image(self, tag: str) -> None:
        if self.pull_error is not None:
            raise self.pull_error
        self.pulled.append(tag)
        self.images.add(tag)

    def image_exists(self, tag: str) -> bool:
        return tag in self.images

    def list_forwarder_containers(self, target_id: str | None = None) -> list:
        return [
            c
            for c in self.live_proxies()
            if target_id is None or c.labels.get(LABEL_TARGET) == target_id
        ]


async def eventually(predicate, timeout: float = 5.0, interval: float = 0.01) -> None:
    """Poll ``predicate`` until true, failing the test after ``timeout``."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(interval)


@pytest.fixture
def fake_docker() -> FakeDocker:
    return FakeDocker()


@pytest.fixture(autouse=True)
def fast_timings(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(config, "CLEANUP_TIMEOUT_SECONDS", 2.0)
    monkeypatch.setattr(config, "RESTART_POLL_INTERVAL_SECONDS", 0.01)
