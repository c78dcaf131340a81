"""File-backed storage rooted in a per-user data directory."""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

DEFAULT_DIR_NAME = ".astn"


def get_data_dir() -> Path:
    """
    Get the data directory for storing local files.

    Uses the ASTN_DATA_DIR environment variable if set, otherwise
    ``~/.astn`` in the current user's home directory.

    Returns:
        Path to the data directory
    """
    env_dir = os.environ.get("ASTN_DATA_DIR")
    if env_dir:
        return Path(env_dir).expanduser()
    return Path.home() / DEFAULT_DIR_NAME


class BaseStorage:
    """Base class for whole-file key/value storage in one subdirectory."""

    def __init__(self, subdirectory: str, root: Optional[Path] = None):
        """
        Initialize storage with a subdirectory name.

        Args:
            subdirectory: Name of the subdirectory within the data directory
            root: Data directory to use instead of get_data_dir()
        """
        self.data_dir = (root or get_data_dir()) / subdirectory
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _read(self, file_path: Path) -> Optional[str]:
        if not file_path.exists():
            return None
        try:
            return file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return None

    def _write(self, file_path: Path, content: str) -> None:
        """Replace the file in one step; readers see the old or the new content."""
        fd, tmp_name = tempfile.mkstemp(
            dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp_name, file_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _load_json(self, file_path: Path) -> dict[str, Any] | list[Any] | None:
        """Load JSON from a file, returning None if it is missing or unreadable."""
        text = self._read(file_path)
        if text is None:
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            return None

    def _save_json(self, file_path: Path, data: dict[str, Any] | list[Any]) -> None:
        self._write(file_path, json.dumps(data, indent=2, default=str))

    def _load_text(self, file_path: Path) -> Optional[str]:
        return self._read(file_path)

    def _save_text(self, file_path: Path, content: str) -> None:
        self._write(file_path, content)

    def _delete(self, file_path: Path) -> bool:
        """Delete a file. Returns True if it existed."""
        try:
            file_path.unlink()
        except FileNotFoundError:
            return False
        return True
