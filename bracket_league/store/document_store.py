import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List

from filelock import FileLock, Timeout

from bracket_league.core.errors import DocumentCorruptError, NotFoundError, PersistenceError

logger = logging.getLogger(__name__)


class JsonDocumentStore:
    """
    Keyed JSON documents on disk, one file per key.

    Keys may contain "/" to group documents into sub-directories
    (e.g. ``tournaments/<id>``). Every read-modify-write must run inside
    ``transaction(key)`` so that writes to one document are serialized
    both between threads and between processes.
    """

    def __init__(self, root_dir: str, lock_timeout: float = 10.0):
        self.root_dir = root_dir
        self.lock_timeout = lock_timeout
        os.makedirs(self.root_dir, exist_ok=True)
        self._guard = threading.Lock()
        self._thread_locks: Dict[str, threading.RLock] = {}
        self._file_locks: Dict[str, FileLock] = {}

    def _path(self, key: str) -> str:
        parts = [p for p in key.split("/") if p]
        if not parts or any(p in (".", "..") for p in parts):
            raise ValueError(f"Invalid document key '{key}'")
        return os.path.join(self.root_dir, *parts) + ".json"

    def _locks_for(self, key: str):
        with self._guard:
            if key not in self._thread_locks:
                lock_path = self._path(key) + ".lock"
                os.makedirs(os.path.dirname(lock_path), exist_ok=True)
                self._thread_locks[key] = threading.RLock()
                self._file_locks[key] = FileLock(lock_path, timeout=self.lock_timeout)
            return self._thread_locks[key], self._file_locks[key]

    @contextmanager
    def transaction(self, key: str) -> Iterator[None]:
        """Hold the exclusive lock for ``key`` for the duration of the block."""
        thread_lock, file_lock = self._locks_for(key)
        if not thread_lock.acquire(timeout=self.lock_timeout):
            raise PersistenceError(f"Timed out waiting for lock on '{key}'")
        try:
            try:
                file_lock.acquire()
            except Timeout as e:
                raise PersistenceError(f"Timed out waiting for file lock on '{key}'") from e
            try:
                yield
            finally:
                file_lock.release()
        finally:
            thread_lock.release()

    def exists(self, key: str) -> bool:
        return os.path.exists(self._path(key))

    def read(self, key: str) -> Any:
        """
        Reads and parses the document stored under ``key``.
        Raises NotFoundError if it was never written and DocumentCorruptError
        if it exists but is empty or not valid JSON.
        """
        path = self._path(key)
        try:
            with open(path, "r", encoding="utf-8") as f:
                content = f.read()
        except FileNotFoundError:
            raise NotFoundError(f"Document '{key}' not found.")
        except OSError as e:
            raise PersistenceError(f"Could not read document '{key}': {e}") from e
        if not content.strip():
            raise DocumentCorruptError(f"Document '{key}' is empty.")
        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            raise DocumentCorruptError(f"Document '{key}' is not valid JSON: {e}") from e

    def write(self, key: str, data: Any) -> None:
        """Replaces the whole document atomically."""
        path = self._path(key)
        directory = os.path.dirname(path)
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".tmp-", suffix=".json")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=4, default=str)
                os.replace(tmp_path, path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise
        except OSError as e:
            raise PersistenceError(f"Could not write document '{key}': {e}") from e

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            os.remove(path)
        except FileNotFoundError:
            raise NotFoundError(f"Document '{key}' not found.")
        except OSError as e:
            raise PersistenceError(f"Could not delete document '{key}': {e}") from e

    def keys(self, prefix: str = "") -> List[str]:
        """Lists document keys directly under ``prefix`` (non-recursive)."""
        directory = os.path.join(self.root_dir, *[p for p in prefix.split("/") if p])
        if not os.path.isdir(directory):
            return []
        result = []
        for name in sorted(os.listdir(directory)):
            if name.endswith(".json") and not name.startswith(".tmp-"):
                stem = name[: -len(".json")]
                result.append(f"{prefix.rstrip('/')}/{stem}" if prefix else stem)
        return result
