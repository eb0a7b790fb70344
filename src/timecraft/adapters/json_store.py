"""File-based key-value storage adapter."""

import json
import os
import tempfile
from pathlib import Path
from typing import Any


class JsonFileStore:
    """
    JSON file key-value store.

    Implements KeyValueStore protocol. The whole mapping is read on load and
    rewritten on every save; writes go through a temp file and os.replace so
    a crash never leaves a half-written file.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path).expanduser()

    def load(self) -> dict[str, Any]:
        """Return the stored mapping, or {} if the file does not exist."""
        if not self.path.exists():
            return {}
        data = json.loads(self.path.read_text() or "{}")
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not contain a JSON object")
        return data

    def save(self, mapping: dict[str, Any]) -> None:
        """Atomically replace the stored mapping."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(mapping, f, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def delete(self, key: str) -> None:
        """Remove one key if present."""
        mapping = self.load()
        if key in mapping:
            del mapping[key]
            self.save(mapping)
