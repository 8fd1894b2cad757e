import hashlib
import logging
import os
import uuid
from typing import Optional

logger = logging.getLogger(__name__)


class PhotoStorage:
    """Stores photo blobs as flat files under a single directory."""

    def __init__(self, root_dir: str):
        self.root_dir = root_dir

    def path_for(self, filename_hash: str) -> str:
        # Blob names are generated by save(); never trust path separators
        return os.path.join(self.root_dir, os.path.basename(filename_hash))

    def save(self, content: bytes, original_filename: Optional[str] = None) -> str:
        """Write a blob and return the generated name it is stored under."""
        os.makedirs(self.root_dir, exist_ok=True)
        extension = os.path.splitext(original_filename or "")[1].lower()
        digest = hashlib.sha256(content).hexdigest()[:32]
        filename_hash = f"{digest}-{uuid.uuid4().hex[:8]}{extension}"

        with open(self.path_for(filename_hash), "wb") as handle:
            handle.write(content)

        logger.info(f"Stored photo blob {filename_hash} ({len(content)} bytes)")
        return filename_hash

    def exists(self, filename_hash: str) -> bool:
        return os.path.isfile(self.path_for(filename_hash))

    def delete(self, filename_hash: str) -> None:
        """Remove a blob. A blob that is already gone counts as removed."""
        try:
            os.remove(self.path_for(filename_hash))
        except FileNotFoundError:
            logger.warning(f"Photo blob {filename_hash} was already missing")
