"""Persistence helpers for JSON-backed record storage."""

from __future__ import annotations

import json
import os
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any, Iterable, List, Optional

from reservations.errors import StorageError


class JsonRecordRepository:
    """Read/write a list of plain records to a JSON backing file.

    With no ``file_path`` the repository keeps nothing on disk, which is
    what tests and throwaway processes use.
    """

    def __init__(self, file_path: Optional[str], *, logger: Any) -> None:
        self._path = Path(file_path) if file_path else None
        self._logger = logger

    @property
    def path(self) -> Optional[Path]:
        return self._path

    def load(self) -> List[dict]:
        """Load records from disk; a missing file means an empty store."""

        if self._path is None:
            return []
        if not self._path.exists():
            self._logger.debug("Store file %s does not exist; starting empty", self._path)
            return []

        try:
            with self._path.open('r', encoding='utf-8') as handle:
                payload = json.load(handle)
        except (OSError, ValueError) as exc:
            self._logger.error("Failed to load records from %s: %s", self._path, exc)
            raise StorageError(f"Could not read {self._path}") from exc

        if isinstance(payload, list):
            self._logger.debug("Loaded %s records from %s", len(payload), self._path)
            return payload
        self._logger.warning(
            "Invalid store format in %s; expected list, received %s",
            self._path,
            type(payload).__name__,
        )
        return []

    def save(self, records: Iterable[dict]) -> None:
        """Atomically replace the backing file with ``records``."""

        if self._path is None:
            return

        tmp_path: Optional[Path] = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with NamedTemporaryFile(
                'w', encoding='utf-8', dir=self._path.parent, delete=False
            ) as handle:
                tmp_path = Path(handle.name)
                json.dump(list(records), handle, indent=2, ensure_ascii=False)
                handle.write("\n")
            os.replace(tmp_path, self._path)
            self._logger.debug("Store saved to %s", self._path)
        except (OSError, TypeError, ValueError) as exc:
            self._logger.error("Failed to save records to %s: %s", self._path, exc)
            if tmp_path is not None and tmp_path.exists():
                tmp_path.unlink()
            raise StorageError(f"Could not write {self._path}") from exc
