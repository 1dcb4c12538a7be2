"""Image store factory.

Provides get_image_store() / set_image_store() to swap implementations:
- FakeImageStore for development and testing (IMAGE_STORE=fake, default)
- CloudinaryImageStore for production (IMAGE_STORE=cloudinary)
"""

import os

from ordering.media.fake_adapter import FakeImageStore
from ordering.media.port import ImageStore

_current_store: ImageStore | None = None


def get_image_store() -> ImageStore:
    """Return the configured image store (singleton)."""
    global _current_store
    if _current_store is None:
        adapter = os.environ.get("IMAGE_STORE", "fake")
        if adapter == "fake":
            _current_store = FakeImageStore()
        elif adapter == "cloudinary":
            from ordering.media.cloudinary_adapter import CloudinaryImageStore

            _current_store = CloudinaryImageStore()
        else:
            raise ValueError(f"Unknown image store: {adapter}")
    return _current_store


def set_image_store(store: ImageStore) -> None:
    """Override the active image store (useful for tests)."""
    global _current_store
    _current_store = store


def reset_image_store() -> None:
    global _current_store
    _current_store = None
