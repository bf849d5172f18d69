"""Raw payload storage under generated opaque names (no business logic)."""

import logging
import re
import uuid
from pathlib import Path

log = logging.getLogger(__name__)

# Generated names are uuid4 hex; thumbnails append _<width>. No separators, no traversal.
_SAFE_NAME = re.compile(r"^[A-Za-z0-9_-]+$")


class BlobStore:
    """Flat directory of blobs. Names are chosen by callers, never derived from content."""

    def __init__(self, base_path: Path) -> None:
        self.base_path = Path(base_path)

    @staticmethod
    def new_name() -> str:
        """Fresh opaque blob name."""
        return uuid.uuid4().hex

    def path_for(self, name: str) -> Path:
        """Filesystem path for a blob name. Raises ValueError for unsafe names."""
        if not name or not _SAFE_NAME.match(name):
            raise ValueError(f"Unsafe blob name: {name!r}")
        return self.base_path / name

    def write(self, name: str, data: bytes) -> Path:
        """Write (or overwrite) a blob and return its path. OSError propagates to the caller."""
        target = self.path_for(name)
        self.base_path.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        log.debug("Wrote blob %s size=%d", name, len(data))
        return target

    def read(self, name: str) -> bytes:
        """Return blob bytes. Raises FileNotFoundError if absent."""
        target = self.path_for(name)
        if not target.is_file():
            raise FileNotFoundError(f"Blob not found: {name}")
        return target.read_bytes()

    def exists(self, name: str) -> bool:
        try:
            return self.path_for(name).is_file()
        except ValueError:
            return False


def blob_name(local_path: str) -> str:
    """Blob name of a stored local_path."""
    return Path(local_path).name


def variant_name(name: str, width: int) -> str:
    """Name of a thumbnail derived from blob name."""
    return f"{name}_{width}"
