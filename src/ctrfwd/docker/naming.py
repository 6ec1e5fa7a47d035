"""
Naming and labeling rules for proxy containers.

Every proxy container gets a unique name and a set of labels so leftovers
can be found and pruned after an abrupt exit.
"""

import uuid

CONTAINER_PREFIX = "ctrfwd"

LABEL_MANAGED = "ctrfwd.managed"
LABEL_TARGET = "ctrfwd.target"
LABEL_ROLE = "ctrfwd.role"


def short_id() -> str:
    """First group of a random UUID (8 hex chars)."""
    return str(uuid.uuid4()).split("-")[0]


def proxy_container_name() -> str:
    """Generate a unique proxy container name."""
    return f"{CONTAINER_PREFIX}-{short_id()}"


def make_labels(target_id: str, role: str) -> dict[str, str]:
    """
    Labels attached to a proxy container.

    Args:
        target_id: Id of the container being forwarded into.
        role: "direct" or "sidecar".
    """
    return {
        LABEL_MANAGED: "true",
        LABEL_TARGET: target_id,
        LABEL_ROLE: role,
    }
