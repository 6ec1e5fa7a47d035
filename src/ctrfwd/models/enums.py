"""
Enumeration types for ctrfwd.

This module defines the enumeration types used across the forwarding engine
and the CLI for strategy tagging, output selection and configuration.
"""

from enum import Enum


# =============================================================================
# Forwarding Enums
# =============================================================================


class ForwardingStrategy(str, Enum):
    """
    How a forwarding reaches its remote endpoint.

    - DIRECT: One proxy container attached to one of the target's networks
    - SIDECAR: An inner proxy inside the target's network namespace plus a
      direct leg from the host to that inner proxy
    """

    DIRECT = "direct"
    SIDECAR = "sidecar"


class OutputFormat(str, Enum):
    """Format of the forwarding lines written to stdout."""

    TEXT = "text"
    JSON = "json"


# =============================================================================
# Configuration Enums
# =============================================================================


class LogLevel(str, Enum):
    """Logging verbosity levels."""

    TRACE = "trace"
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
