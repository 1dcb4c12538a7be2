"""Cloudinary image store adapter.

Credentials come from the ``CLOUDINARY_URL`` environment variable, which the
cloudinary SDK reads on its own.
"""

import io

import cloudinary.exceptions
import cloudinary.uploader
import structlog

from ordering.exceptions import UpstreamFailureError
from ordering.media.port import ImageStore

logger = structlog.get_logger(__name__)


class CloudinaryImageStore(ImageStore):
    """Production image store backed by Cloudinary."""

    def upload(self, data: bytes, mime_type: str, folder: str, public_id: str) -> str:
        try:
            result = cloudinary.uploader.upload(
                io.BytesIO(data),
                folder=folder,
                public_id=public_id,
                unique_filename=True,
                overwrite=False,
                resource_type="image",
            )
        except cloudinary.exceptions.Error as exc:
            logger.warning("Cloudinary upload failed", folder=folder, public_id=public_id, error=str(exc))
            raise UpstreamFailureError({"image": ["Image upload failed"]}, details=str(exc)) from exc

        url = result.get("secure_url")
        if not url:
            raise UpstreamFailureError({"image": ["Image store returned no URL"]}, details=result)
        return url
