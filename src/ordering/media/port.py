"""Image store port (abstract interface).

Proof photos are uploaded through this contract so the delivery flow can run
against FakeImageStore in development and tests and Cloudinary in production.
"""

from abc import ABC, abstractmethod


class ImageStore(ABC):
    """Abstract image store interface."""

    @abstractmethod
    def upload(self, data: bytes, mime_type: str, folder: str, public_id: str) -> str:
        """Store ``data`` and return its public URL.

        ``public_id`` is a naming hint; stores may make it unique.
        Failures raise UpstreamFailureError.
        """
        ...
