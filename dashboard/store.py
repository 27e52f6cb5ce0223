"""File-backed key/value store with cross-process change notification."""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
from pathlib import Path
from typing import Callable

import yaml

logger = logging.getLogger(__name__)

ChangeListener = Callable[[str | None], None]


class KeyValueStore:
    """String key/value pairs persisted as one YAML mapping.

    Every ``set``/``remove`` rewrites the whole document atomically. Listeners
    are told about changes made by *other* writers of the same file, detected
    by :meth:`check_for_changes` (call it on focus/resume, or let
    :meth:`watch` poll it).
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._listeners: list[ChangeListener] = []
        self._stamp = self._current_stamp()
        self._snapshot = self._read()

    # -- persistence --------------------------------------------------------

    def _current_stamp(self) -> tuple[int, int, int] | None:
        try:
            st = self.path.stat()
        except FileNotFoundError:
            return None
        return (st.st_ino, st.st_mtime_ns, st.st_size)

    def _read(self) -> dict[str, str]:
        try:
            with open(self.path) as f:
                data = yaml.safe_load(f)
        except FileNotFoundError:
            return {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Store %s is unreadable, treating as empty: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w") as f:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
        self._stamp = self._current_stamp()
        self._snapshot = dict(data)

    # -- key/value API ------------------------------------------------------

    def get(self, key: str) -> str | None:
        return self._read().get(key)

    def keys(self) -> list[str]:
        return list(self._read())

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> bool:
        data = self._read()
        if key not in data:
            return False
        del data[key]
        self._write(data)
        return True

    # -- change notification ------------------------------------------------

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def check_for_changes(self) -> bool:
        """Notify listeners if another writer changed the file since we last looked."""
        stamp = self._current_stamp()
        if stamp == self._stamp:
            return False
        self._stamp = stamp
        previous, self._snapshot = self._snapshot, self._read()
        changed = {
            k for k in previous.keys() | self._snapshot.keys()
            if previous.get(k) != self._snapshot.get(k)
        }
        for key in sorted(changed) or [None]:
            for listener in list(self._listeners):
                listener(key)
        return True

    async def watch(self, interval: float = 2.0) -> None:
        """Poll for external changes until cancelled."""
        while True:
            await asyncio.sleep(interval)
            try:
                self.check_for_changes()
            except Exception:
                logger.exception("Store change listener failed")
