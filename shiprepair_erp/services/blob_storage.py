"""Blob store for cost and service item attachments.

Keys are generated filenames inside a single directory; callers only ever see
the opaque key returned by store(). The methods do blocking file I/O, so async
callers run them through starlette's run_in_threadpool.
"""
import logging
import secrets
import time
from functools import lru_cache
from pathlib import Path

from shiprepair_erp.config import settings
from shiprepair_erp.exceptions import NotFoundError

logger = logging.getLogger(__name__)


class LocalBlobStorage:
    """Filesystem-backed blob store."""

    def __init__(self, base_dir: str | Path):
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def generate_key(filename: str) -> str:
        original = Path(filename or "file").name.replace(" ", "_") or "file"
        return f"{int(time.time() * 1000)}-{secrets.randbelow(10**9)}-{original}"

    def _resolve(self, key: str) -> Path:
        # Keys never contain path separators; anything else is not ours
        if not key or Path(key).name != key:
            raise NotFoundError("File")
        return self.base_dir / key

    def store(self, data: bytes, filename: str) -> str:
        key = self.generate_key(filename)
        (self.base_dir / key).write_bytes(data)
        logger.debug(f"Stored blob {key} ({len(data)} bytes)")
        return key

    def retrieve(self, key: str) -> bytes:
        path = self._resolve(key)
        if not path.is_file():
            raise NotFoundError("File")
        return path.read_bytes()

    def delete(self, key: str) -> bool:
        """Remove a blob. Missing blobs and I/O errors are logged, not raised."""
        try:
            path = self._resolve(key)
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except (OSError, NotFoundError) as e:
            logger.warning(f"Failed to delete blob {key}: {type(e).__name__}")
            return False


@lru_cache()
def get_blob_storage() -> LocalBlobStorage:
    """Dependency returning the configured blob store."""
    return LocalBlobStorage(settings.UPLOAD_DIR)
