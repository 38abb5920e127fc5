"""
Cross-platform exclusive file lock guarding a project's reindex.

Only one process may rebuild a given index at a time. The lock is
non-blocking: a second writer is rejected immediately instead of queued.
The lock file holds a small JSON record describing the current holder.
"""

from __future__ import annotations

import errno
import json
import os
import time
from pathlib import Path
from typing import Optional

from loguru import logger

from devcanvas.core.exceptions import IndexBusyError

_IS_WINDOWS = os.name == "nt"
if not _IS_WINDOWS:
    import fcntl  # type: ignore
else:  # pragma: no cover - windows specific
    import msvcrt  # type: ignore


class IndexLock:
    def __init__(self, lock_path: str | Path) -> None:
        self._lock_path = Path(lock_path)
        self._fh: Optional[object] = None
        self._acquired_at: float | None = None

    @property
    def path(self) -> Path:
        return self._lock_path

    @property
    def is_held(self) -> bool:
        return self._fh is not None

    # Public API
    def try_acquire(self) -> bool:
        """Take the lock if free. Returns False when another holder has it."""
        if self._fh is not None:
            return True
        self._lock_path.parent.mkdir(parents=True, exist_ok=True)
        fh = open(self._lock_path, "a+b", buffering=0)
        fh.close()
        fh = open(self._lock_path, "r+b", buffering=0)
        if not self._try_lock_exclusive(fh):
            fh.close()
            return False
        self._fh = fh
        self._acquired_at = time.time()
        self._write_meta(
            {
                "pid": os.getpid(),
                "start_ts": self._acquired_at,
                "version": 1,
            }
        )
        return True

    def acquire(self) -> None:
        """Take the lock or raise IndexBusyError."""
        if not self.try_acquire():
            holder = self.read_meta()
            pid = holder.get("pid", "unknown")
            raise IndexBusyError(
                f"Another reindex of this project is already running (pid {pid}); "
                f"lock file: {self._lock_path}"
            )
        logger.debug(f"Acquired index lock {self._lock_path}")

    def release(self) -> None:
        if self._fh is None:
            return
        fh = self._fh
        self._fh = None
        self._acquired_at = None
        try:
            self._write_to_handle(fh, {})
            self._unlock_exclusive(fh)
        finally:
            fh.close()
        logger.debug(f"Released index lock {self._lock_path}")

    def read_meta(self) -> dict:
        try:
            if self._fh is not None:
                self._fh.seek(0)
                data_bytes = self._fh.read()
            else:
                with open(self._lock_path, "rb") as rfh:
                    data_bytes = rfh.read()
        except FileNotFoundError:
            return {}
        data = data_bytes.decode("utf-8", errors="ignore")
        if not data.strip():
            return {}
        try:
            return json.loads(data)
        except json.JSONDecodeError:
            return {}

    def __enter__(self) -> "IndexLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    # Internals
    def _write_meta(self, meta: dict) -> None:
        if self._fh is not None:
            self._write_to_handle(self._fh, meta)

    def _write_to_handle(self, fh, meta: dict) -> None:
        data = (json.dumps(meta, separators=(",", ":")) + "\n").encode("utf-8") if meta else b""
        fh.seek(0)
        fh.truncate(0)
        fh.write(data)
        fh.flush()

    def _try_lock_exclusive(self, fh) -> bool:
        if _IS_WINDOWS:  # pragma: no cover
            try:
                fh.seek(0)
                msvcrt.locking(fh.fileno(), msvcrt.LK_NBLCK, 1)
                return True
            except OSError:
                return False
        else:
            try:
                fcntl.flock(fh, fcntl.LOCK_EX | fcntl.LOCK_NB)
                return True
            except OSError as e:
                if e.errno in (errno.EACCES, errno.EAGAIN):
                    return False
                raise

    def _unlock_exclusive(self, fh) -> None:
        if _IS_WINDOWS:  # pragma: no cover
            fh.seek(0)
            msvcrt.locking(fh.fileno(), msvcrt.LK_UNLCK, 1)
        else:
            fcntl.flock(fh, fcntl.LOCK_UN)
