"""
ctrfwd configuration.

A global Config instance that can be modified at runtime, mostly by the CLI
before a command starts.
"""

import os
from dataclasses import dataclass

from ctrfwd.models.enums import LogLevel


@dataclass
class ForwardConfig:
    """Port-forwarding configuration."""

    # Forwarder Configuration
    FORWARDER_IMAGE: str = "nixery.dev/shell/socat:latest"
    DEFAULT_LOCAL_HOST: str = "127.0.0.1"

    # Sidecar port range (inside the target's network namespace)
    SIDECAR_PORT_MIN: int = 40000
    SIDECAR_PORT_MAX: int = 49999

    # Timing Configuration
    RUNNING_TIMEOUT_SECONDS: float = 10.0
    RESTART_POLL_INTERVAL_SECONDS: float = 0.1
    CLEANUP_TIMEOUT_SECONDS: float = 5.0

    # Docker Configuration
    DOCKER_HOST: str = ""  # Empty means DOCKER_HOST / docker defaults
    DOCKER_TIMEOUT_SECONDS: int = 60

    # Logging Configuration
    LOG_LEVEL: LogLevel = LogLevel.WARNING

    def load_env(self) -> None:
        """
        Apply overrides from CTRFWD_* environment variables.

        The log level and Docker host come in through CLI options, which
        read CTRFWD_LOG_LEVEL and DOCKER_HOST themselves.

        Raises:
            ValueError: An override has an invalid value.
        """
        if image := os.environ.get("CTRFWD_IMAGE"):
            self.FORWARDER_IMAGE = image
        if timeout := os.environ.get("CTRFWD_CLEANUP_TIMEOUT"):
            try:
                self.CLEANUP_TIMEOUT_SECONDS = float(timeout)
            except ValueError:
                raise ValueError(
                    f"CTRFWD_CLEANUP_TIMEOUT must be a number of seconds, got {timeout!r}"
                ) from None


config = ForwardConfig()
