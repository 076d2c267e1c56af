import contextlib
import os
import tempfile
import threading
from typing import Callable, IO, Optional

from digital_library.errors import StorageError


def atomic_write(path: str, write: Callable[[IO[str]], None], newline: Optional[str] = None) -> None:
    """Write ``path`` through a temporary file in the same directory, then swap it in.

    Readers see either the old file or the complete new one, never a partial write.
    """
    directory = os.path.dirname(os.path.abspath(path))
    try:
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".", suffix=".tmp")
    except OSError as e:
        raise StorageError(f"Cannot write {path}: {e}") from e
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline=newline) as fh:
            write(fh)
        os.replace(tmp_path, path)
    except OSError as e:
        with contextlib.suppress(OSError):
            os.unlink(tmp_path)
        raise StorageError(f"Cannot write {path}: {e}") from e
    except Exception:
        with contextlib.suppress(OSError):
            os.unlink(tmp_path)
        raise


class FileBackedRepository:
    """Common state of the file adapters.

    Every mutation re-reads the file, changes the decoded collection and
    rewrites the whole file. The instance lock serializes that cycle between
    threads of one process; nothing guards against other processes.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        self._lock = threading.RLock()

    def exists(self) -> bool:
        return os.path.exists(self.path)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.path!r})"
