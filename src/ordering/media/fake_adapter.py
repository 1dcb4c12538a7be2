"""In-memory image store for development and testing."""

from uuid import uuid4

from ordering.exceptions import UpstreamFailureError
from ordering.media.port import ImageStore


class FakeImageStore(ImageStore):
    """Keeps uploads in memory and returns deterministic-looking URLs."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.uploads: dict[str, bytes] = {}
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool) -> None:
        self.should_succeed = should_succeed

    def upload(self, data: bytes, mime_type: str, folder: str, public_id: str) -> str:
        self.calls.append(
            {
                "method": "upload",
                "size": len(data),
                "mime_type": mime_type,
                "folder": folder,
                "public_id": public_id,
            }
        )
        if not self.should_succeed:
            raise UpstreamFailureError({"image": ["Image upload failed"]}, details="fake store configured to fail")

        url = f"https://images.fake.test/{folder}/{public_id}-{uuid4().hex[:8]}"
        self.uploads[url] = data
        return url
