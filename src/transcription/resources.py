"""Scoped ownership of temporary files and directories created during a job."""

from __future__ import annotations

import logging
import os
import shutil
import threading
from collections.abc import Callable
from types import TracebackType

logger = logging.getLogger(__name__)


class ReleaseHandle:
    """Idempotent release callback for one piece of filesystem state.

    Calling :meth:`release` more than once is a no-op. Exceptions raised by the
    underlying callback are logged, never propagated, so a failing cleanup can
    not mask the error that triggered it.
    """

    def __init__(self, release_fn: Callable[[], None], description: str = "") -> None:
        self._release_fn = release_fn
        self.description = description
        self._released = False
        self._lock = threading.Lock()

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        with self._lock:
            if self._released:
                return
            self._released = True
        try:
            self._release_fn()
        except Exception:
            logger.warning("Failed to release %s", self.description or "resource", exc_info=True)

    def __repr__(self) -> str:
        state = "released" if self._released else "held"
        return f"ReleaseHandle({self.description!r}, {state})"


def directory_handle(path: str) -> ReleaseHandle:
    """Handle that removes *path* recursively. A directory already gone is fine."""

    def _remove() -> None:
        if os.path.exists(path):
            shutil.rmtree(path)

    return ReleaseHandle(_remove, description=f"directory {path}")


def file_handle(path: str) -> ReleaseHandle:
    """Handle that deletes a single file if it still exists."""

    def _remove() -> None:
        if os.path.exists(path):
            os.unlink(path)

    return ReleaseHandle(_remove, description=f"file {path}")


class ResourceStack:
    """Stack of release handles unwound in reverse acquisition order.

    Used as a context manager: every handle pushed inside the ``with`` block is
    released on exit, whether the block returned, raised or was cancelled.

    Example::

        with ResourceStack() as resources:
            split = split_audio(path, 900)
            resources.push(split.handle)
            ...
    """

    def __init__(self) -> None:
        self._handles: list[ReleaseHandle] = []
        self._lock = threading.Lock()

    def push(self, handle: ReleaseHandle) -> ReleaseHandle:
        with self._lock:
            self._handles.append(handle)
        return handle

    def callback(self, fn: Callable[[], None], description: str = "") -> ReleaseHandle:
        """Wrap a plain callable in a handle and push it."""
        return self.push(ReleaseHandle(fn, description))

    @property
    def held(self) -> list[ReleaseHandle]:
        """Handles not yet released, oldest first."""
        with self._lock:
            return [h for h in self._handles if not h.released]

    def release_all(self) -> None:
        with self._lock:
            handles = list(reversed(self._handles))
            self._handles.clear()
        for handle in handles:
            handle.release()

    def __enter__(self) -> ResourceStack:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release_all()
