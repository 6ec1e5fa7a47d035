"""
Container lifecycle management mixin for DockerManager.

This module provides the ContainerManagerMixin class with methods for:
    - Container inspection
    - Proxy container creation and start
    - Waiting for a container to leave the running state
    - Container teardown (kill, remove)
    - Published port lookup and managed container listing
"""

from docker.errors import APIError, ImageNotFound, NotFound
from docker.models.containers import Container
from requests.exceptions import RequestException

from ctrfwd.docker.exceptions import (
    ContainerCreationError,
    ContainerNotFoundError,
    ContainerStartError,
    ContainerWaitError,
)
from ctrfwd.docker.naming import LABEL_MANAGED, LABEL_TARGET
from ctrfwd.utils.logger import get_logger

log = get_logger(__name__)


class ContainerManagerMixin:
    """
    Mixin providing container lifecycle management methods.

    Expects ``self.client`` to be a docker-py client instance.
    """

    # =========================================================================
    # Container Retrieval
    # =========================================================================

    def inspect_container(self, ref: str) -> dict:
        """
        Get the inspect document of a container.

        Args:
            ref: Container name or id.

        Returns:
            The ``docker inspect`` dict.

        Raises:
            ContainerNotFoundError: If container doesn't exist.
        """
        try:
            return self.client.api.inspect_container(ref)
        except NotFound:
            raise ContainerNotFoundError(ref)

    # =========================================================================
    # Container Creation
    # =========================================================================

    def create_container(
        self,
        image: str,
        name: str,
        command: list[str],
        entrypoint: list[str] | None = None,
        ports: dict | None = None,
        network_mode: str | None = None,
        auto_remove: bool = True,
        labels: dict[str, str] | None = None,
    ) -> str:
        """
        Create (but do not start) a container.

        Args:
            image: Docker image name/tag.
            name: Container name.
            command: Command arguments.
            entrypoint: Entrypoint override.
            ports: Port bindings, ``{"80/tcp": ("127.0.0.1", 8080)}``. A
                one-element tuple lets the daemon pick the host port.
            network_mode: Network name or ``container:<id>``.
            auto_remove: Remove the container once it exits.
            labels: Container labels.

        Returns:
            Id of the created container.

        Raises:
            ContainerCreationError: If container creation fails.
        """
        kwargs: dict = {
            "name": name,
            "entrypoint": entrypoint,
            "auto_remove": auto_remove,
            "labels": labels or {},
        }
        if ports:
            kwargs["ports"] = ports
        if network_mode:
            kwargs["network_mode"] = network_mode

        try:
            container = self.client.containers.create(image, command, **kwargs)
        except ImageNotFound:
            log.info(f"Image {image} not found locally, pulling...")
            try:
                self.client.images.pull(image)
                container = self.client.containers.create(image, command, **kwargs)
            except APIError as e:
                log.error(f"Failed to create container {name}: {e}")
                raise ContainerCreationError(str(e), name) from e
        except APIError as e:
            log.error(f"Failed to create container {name}: {e}")
            raise ContainerCreationError(str(e), name) from e

        log.debug(f"Created container {name} ({container.id[:12]}) from {image}")
        return container.id

    # =========================================================================
    # Container Lifecycle
    # =========================================================================

    def start_container(self, container_id: str) -> None:
        """
        Start a created container.

        Raises:
            ContainerStartError: If the daemon refuses to start it.
        """
        try:
            self.client.api.start(container_id)
            log.debug(f"Container {container_id[:12]} started")
        except APIError as e:
            log.error(f"Failed to start container {container_id[:12]}: {e}")
            raise ContainerStartError(str(e), container_id) from e

    def wait_container(self, container_id: str, condition: str = "not-running") -> int:
        """
        Block until a container meets ``condition``.

        Args:
            container_id: Container id.
            condition: Docker wait condition.

        Returns:
            The container's exit status code.

        Raises:
            ContainerWaitError: If the wait request fails.
        """
        try:
            result = self.client.api.wait(container_id, condition=condition)
        except (APIError, RequestException) as e:
            raise ContainerWaitError(str(e), container_id) from e
        error = result.get("Error") or {}
        if error.get("Message"):
            raise ContainerWaitError(error["Message"], container_id)
        return int(result.get("StatusCode", -1))

    def kill_container(self, container_id: str, signal: str = "SIGKILL") -> bool:
        """
        Kill a container with a signal.

        Args:
            container_id: Container id or name.
            signal: Signal to send (default: SIGKILL).

        Returns:
            True if killed successfully, False otherwise.
        """
        try:
            self.client.api.kill(container_id, signal=signal)
            log.debug(f"Container {container_id[:12]} killed with {signal}")
            return True
        except NotFound:
            log.debug(f"Container {container_id[:12]} already gone")
            return True
        except (APIError, RequestException) as e:
            log.warning(f"Failed to kill container {container_id[:12]}: {e}")
            return False

    def remove_container(self, container_id: str, force: bool = True) -> bool:
        """
        Remove a container.

        Args:
            container_id: Container id or name.
            force: Force removal even if running.

        Returns:
            True if removed (or already gone), False otherwise.
        """
        try:
            self.client.api.remove_container(container_id, force=force)
            log.debug(f"Container {container_id[:12]} removed")
            return True
        except NotFound:
            log.debug(f"Container {container_id[:12]} already removed")
            return True
        except APIError as e:
            # Auto-remove already in flight
            if e.status_code == 409:
                log.debug(f"Removal of container {container_id[:12]} in progress")
                return True
            log.warning(f"Failed to remove container {container_id[:12]}: {e}")
            return False
        except RequestException as e:
            log.warning(f"Failed to remove container {container_id[:12]}: {e}")
            return False

    # =========================================================================
    # Container Queries
    # =========================================================================

    def get_port_binding(
        self, container_id: str, container_port: str | int
    ) -> tuple[str, str] | None:
        """
        Get the host address a container port is published on.

        Args:
            container_id: Container id.
            container_port: Container port to look up.

        Returns:
            ``(host_ip, host_port)``, or None if the port has no binding.
        """
        try:
            attrs = self.client.api.inspect_container(container_id)
            ports = attrs["NetworkSettings"]["Ports"] or {}
            bindings = ports.get(f"{container_port}/tcp")
            if bindings:
                return bindings[0]["HostIp"], bindings[0]["HostPort"]
            return None
        except (NotFound, KeyError, IndexError, TypeError):
            return None

    def list_forwarder_containers(self, target_id: str | None = None) -> list[Container]:
        """
        List proxy containers created by ctrfwd, running or not.

        Args:
            target_id: Only containers forwarding into this target.
        """
        labels = [f"{LABEL_MANAGED}=true"]
        if target_id:
            labels.append(f"{LABEL_TARGET}={target_id}")
        return self.client.containers.list(all=True, filters={"label": labels})
