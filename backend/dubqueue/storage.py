"""
Atomic JSON document storage shared by the preset and queue stores.

Writes go to a temp file beside the target and are moved into place with
os.replace, so a reader never sees a half-written document. Reads and
writes of the same path are serialized by a per-path lock.

RunLock is the cross-process counterpart: an OS lock on a file, held by
whichever process is running the queue.
"""

import json
import os
import threading
from pathlib import Path
from typing import Any, Dict

if os.name == "nt":
    import msvcrt

    def _try_lock(f) -> None:
        f.seek(0)
        msvcrt.locking(f.fileno(), msvcrt.LK_NBLCK, 1)

    def _unlock(f) -> None:
        f.seek(0)
        msvcrt.locking(f.fileno(), msvcrt.LK_UNLCK, 1)

else:
    import fcntl

    def _try_lock(f) -> None:
        fcntl.flock(f.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)

    def _unlock(f) -> None:
        fcntl.flock(f.fileno(), fcntl.LOCK_UN)


_locks: Dict[str, threading.Lock] = {}
_locks_guard = threading.Lock()


def lock_for(path: Path) -> threading.Lock:
    """Return the process-wide lock guarding ``path``."""
    key = os.path.normcase(str(Path(path).absolute()))
    with _locks_guard:
        lock = _locks.get(key)
        if lock is None:
            lock = threading.Lock()
            _locks[key] = lock
        return lock


def read_json(path: Path) -> Any:
    """Read a JSON document under the path lock."""
    with lock_for(path):
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)


def write_json_atomic(path: Path, payload: Any) -> None:
    """
    Replace ``path`` with ``payload`` serialized as JSON.

    The parent directory is created if missing.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.with_name(path.name + ".tmp")

    with lock_for(path):
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_path, path)


class RunLock:
    """
    Inter-process lock file.

    The OS lock lives on an open descriptor, so it is released when the
    holder exits or crashes. Two RunLock objects on the same path exclude
    each other even inside one process.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._file = None

    @property
    def held(self) -> bool:
        return self._file is not None

    def acquire(self) -> bool:
        """Take the lock without blocking. Returns False if someone else holds it."""
        if self._file is not None:
            return True

        self.path.parent.mkdir(parents=True, exist_ok=True)
        f = open(self.path, "a+")
        try:
            _try_lock(f)
        except OSError:
            f.close()
            return False

        self._file = f
        return True

    def release(self) -> None:
        if self._file is None:
            return
        try:
            _unlock(self._file)
        finally:
            self._file.close()
            self._file = None

    def held_elsewhere(self) -> bool:
        """True if another holder has the lock right now."""
        if self._file is not None or not self.path.exists():
            return False
        if not self.acquire():
            return True
        self.release()
        return False
