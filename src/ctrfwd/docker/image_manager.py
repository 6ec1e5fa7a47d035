"""
Image management mixin for DockerManager.

This module provides the ImageManagerMixin class with methods for:
    - Image existence checks
    - Image pull
"""

from docker.errors import APIError, ImageNotFound

from ctrfwd.docker.exceptions import ImagePullError
from ctrfwd.utils.logger import get_logger

log = get_logger(__name__)


class ImageManagerMixin:
    """
    Mixin providing image management methods.

    Expects ``self.client`` to be a docker-py client instance.
    """

    def image_exists(self, tag: str) -> bool:
        """Check if an image exists locally."""
        try:
            self.client.images.get(tag)
            return True
        except ImageNotFound:
            return False

    def pull_image(self, tag: str) -> None:
        """
        Pull an image from registry.

        Raises:
            ImagePullError: If the pull fails.
        """
        log.info(f"Pulling image {tag}...")
        try:
            self.client.images.pull(tag)
        except APIError as e:
            raise ImagePullError(str(e), tag) from e
        log.debug(f"Pulled image {tag}")
