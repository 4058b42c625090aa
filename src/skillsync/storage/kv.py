import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional

from ..domain.errors import StorageError

logger = logging.getLogger(__name__)


class KeyValueStore:
    """flat string key/value namespace persisted to a JSON file."""

    def __init__(self, storage_dir: Path, namespace: str):
        self.namespace = namespace
        self.path = storage_dir / f"{namespace}.json"

    def load(self) -> Dict[str, str]:
        """load all pairs in the namespace."""
        if not self.path.exists():
            return {}

        try:
            with open(self.path, "r") as f:
                data = json.load(f)
        except (json.JSONDecodeError, ValueError):
            # corrupted file, return empty
            logger.warning(f"ignoring corrupted store file {self.path}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"ignoring store file {self.path}: expected an object")
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def get(self, key: str) -> Optional[str]:
        return self.load().get(key)

    def put(self, key: str, value: Optional[str]) -> None:
        """write one key. a None value removes it."""
        data = self.load()
        if value is None:
            data.pop(key, None)
        else:
            data[key] = value
        self._save(data)

    def _save(self, data: Dict[str, str]) -> None:
        """
        replace the namespace file with data.

        the pairs are written to a temp file beside it and swapped in, so a
        crash mid-write leaves the previous file intact.

        raises:
            StorageError: if the file cannot be written
        """
        tmp_path = None
        try:
            # ensure parent directory exists
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.namespace}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self.path)
            tmp_path = None
        except OSError as e:
            raise StorageError(f"could not write {self.path}: {e}") from e
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)
