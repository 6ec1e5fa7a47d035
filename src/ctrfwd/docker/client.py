"""
Docker client wrapper using docker-py SDK.

This module provides the DockerManager class, the container runtime the
forwarding engine talks to. All methods are blocking; the engine calls them
from worker threads.

The class is composed from two mixins:
    - ContainerManagerMixin: Container lifecycle and queries
    - ImageManagerMixin: Image operations
"""

import docker

from ctrfwd.config import config
from ctrfwd.docker.container_manager import ContainerManagerMixin
from ctrfwd.docker.exceptions import DockerConnectionError
from ctrfwd.docker.image_manager import ImageManagerMixin
from ctrfwd.utils.logger import get_logger

log = get_logger(__name__)


# =============================================================================
# DockerManager Class
# =============================================================================


class DockerManager(ContainerManagerMixin, ImageManagerMixin):
    """
    Manages Docker operations for ctrfwd using docker-py SDK.

    Attributes:
        client: The docker-py client instance.
    """

    def __init__(self, base_url: str | None = None, timeout: int | None = None):
        """
        Initialize Docker client.

        Args:
            base_url: Daemon URL. None means environment defaults.
            timeout: Request timeout in seconds. None means no timeout.

        Raises:
            DockerConnectionError: If connection to Docker daemon fails.
        """
        try:
            if base_url:
                self.client = docker.DockerClient(
                    base_url=base_url, timeout=timeout, version="auto"
                )
            else:
                self.client = docker.from_env(timeout=timeout)
            self.client.ping()
            log.debug("Docker client initialized successfully")
        except Exception as e:
            log.error(f"Failed to connect to Docker daemon: {e}")
            raise DockerConnectionError(f"Failed to connect to Docker: {e}") from e


# =============================================================================
# Global Instance
# =============================================================================

_docker_manager: DockerManager | None = None


def get_docker_manager() -> DockerManager:
    """
    Get the global DockerManager instance.

    Returns:
        Lazily initialized DockerManager singleton.
    """
    global _docker_manager
    if _docker_manager is None:
        _docker_manager = DockerManager(
            base_url=config.DOCKER_HOST or None,
            timeout=config.DOCKER_TIMEOUT_SECONDS,
        )
    return _docker_manager
