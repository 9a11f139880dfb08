from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, Union

from errors import StorageError


logger = logging.getLogger(__name__)

SECTIONS = {
    "posts": list,
    "roles": list,
    "users": list,
    "sequences": dict,
}


def empty_document() -> Dict:
    return {name: factory() for name, factory in SECTIONS.items()}


class JsonStorage:
    """A single JSON document on disk holding posts, roles and accounts.

    Writes go through :meth:`transaction`, which holds a lock for the whole
    load-modify-save cycle and replaces the file atomically, so a commit is
    either fully on disk or not at all.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.RLock()

    def ensure_created(self) -> None:
        """Make sure the data file exists and carries every section."""
        with self._lock:
            if not self.path.exists():
                logger.info("Creating data file at %s", self.path)
                self._write(empty_document())
                return
            data = self._read()
            missing = [name for name in SECTIONS if name not in data]
            if missing:
                logger.info("Adding sections %s to %s", ", ".join(missing), self.path)
                for name in missing:
                    data[name] = SECTIONS[name]()
                self._write(data)

    def load(self) -> Dict:
        if not self.path.exists():
            return empty_document()
        raw = self._read()
        # Ensure defaults
        for name, factory in SECTIONS.items():
            raw.setdefault(name, factory())
        return raw

    def _read(self) -> Dict:
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                raw = json.load(fh)
        except (OSError, ValueError) as exc:
            raise StorageError(f"Could not read {self.path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise StorageError(f"Unexpected document in {self.path}")
        return raw

    @contextmanager
    def transaction(self) -> Iterator[Dict]:
        """Load, hand out for changes, save. Unchanged documents are not rewritten."""
        with self._lock:
            data = self.load()
            before = json.dumps(data, sort_keys=True)
            yield data
            if json.dumps(data, sort_keys=True) != before:
                self._write(data)

    def _write(self, data: Dict) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", dir=str(self.path.parent)
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(data, fh, indent=2)
                os.replace(tmp_name, self.path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as exc:
            raise StorageError(f"Could not write {self.path}: {exc}") from exc
