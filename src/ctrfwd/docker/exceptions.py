"""Docker-related exception classes."""


class DockerError(Exception):
    """Base exception for Docker operations."""

    pass


class DockerConnectionError(DockerError):
    """Failed to connect to the Docker daemon."""

    pass


class ContainerNotFoundError(DockerError):
    """Container not found."""

    def __init__(self, ref: str):
        self.ref = ref
        super().__init__(f"Container not found: {ref}")


class ContainerCreationError(DockerError):
    """Container creation failed."""

    def __init__(self, message: str, name: str):
        self.name = name
        super().__init__(f"Cannot create container {name}: {message}")


class ContainerStartError(DockerError):
    """Container start failed."""

    def __init__(self, message: str, container_id: str):
        self.container_id = container_id
        super().__init__(f"Cannot start container {container_id[:12]}: {message}")


class ContainerWaitError(DockerError):
    """Waiting for a container state change failed."""

    def __init__(self, message: str, container_id: str):
        self.container_id = container_id
        super().__init__(f"Waiting for container {container_id[:12]} failed: {message}")


class ImagePullError(DockerError):
    """Image pull failed."""

    def __init__(self, message: str, tag: str):
        self.tag = tag
        super().__init__(f"Cannot pull image {tag}: {message}")
