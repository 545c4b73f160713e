"""JSONL file sink: append JSON lines to a file."""

from __future__ import annotations

import json
import threading
from pathlib import Path


class JsonlSink:
    """Append JSON lines to a file.

    Entry merges run on worker threads, so writes are serialized.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def write(self, event_dict: dict) -> None:
        line = json.dumps(event_dict, default=str) + "\n"
        with self._lock, open(self._path, "a", encoding="utf-8") as f:
            f.write(line)
