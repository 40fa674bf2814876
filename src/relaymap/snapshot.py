"""On-disk snapshot of the message map (persistentMessageMap.db)."""

from __future__ import annotations

import contextlib
import json
import os
import shutil
import tempfile
from collections.abc import Mapping, Set
from pathlib import Path

from loguru import logger

from relaymap.core.constants import SNAPSHOT_FILENAME
from relaymap.core.errors import SnapshotWriteError

Index = dict[str, dict[str, set[str]]]


def decode(payload: str) -> Index:
    """Parse snapshot JSON into an index. Malformed parts are skipped, never raised."""
    if not payload.strip():
        return {}
    try:
        data = json.loads(payload)
    except ValueError as exc:
        logger.warning("Message map snapshot is not valid JSON, starting empty: {}", exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Message map snapshot has invalid structure (expected object), starting empty")
        return {}

    index: Index = {}
    for bridge, entries in data.items():
        if not isinstance(entries, dict):
            logger.warning("Skipping snapshot bridge {}: expected object", bridge)
            continue
        keys: dict[str, set[str]] = {}
        for key, ids in entries.items():
            if not isinstance(ids, list):
                logger.warning("Skipping snapshot key {!r} in bridge {}: expected list", key, bridge)
                continue
            keys[key] = {str(i) for i in ids}
        index[str(bridge)] = keys
    return index


def encode(index: Mapping[str, Mapping[str, Set[str]]]) -> str:
    """Serialize an index; target ID sets become sorted lists."""
    data = {
        bridge: {key: sorted(ids) for key, ids in entries.items()}
        for bridge, entries in index.items()
    }
    return json.dumps(data, indent=5)


class SnapshotStore:
    """Read and whole-file rewrite of ``<data_dir>/persistentMessageMap.db``."""

    def __init__(self, data_dir: str | Path, filename: str = SNAPSHOT_FILENAME) -> None:
        self._path = Path(data_dir) / filename

    @property
    def path(self) -> Path:
        return self._path

    def ensure_exists(self) -> None:
        """Create the data dir and an empty snapshot file if missing. Raises OSError."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "a", encoding="utf-8"):
            pass

    def load(self) -> Index:
        """Read and decode the snapshot; unreadable or malformed files yield an empty index."""
        try:
            payload = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Cannot read message map snapshot {}: {}", self._path, exc)
            return {}
        return decode(payload)

    def save(self, index: Mapping[str, Mapping[str, Set[str]]]) -> None:
        """Atomically replace the snapshot with ``index``. Raises SnapshotWriteError."""
        payload = encode(index)
        tmp_name: str | None = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            # mkstemp creates 0600; keep whatever mode the snapshot already has
            with contextlib.suppress(FileNotFoundError):
                shutil.copymode(self._path, tmp_name)
            os.replace(tmp_name, self._path)
        except OSError as exc:
            if tmp_name is not None:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)
            raise SnapshotWriteError(
                f"Failed to write message map snapshot {self._path}: {exc}",
                code="snapshot_write_failed",
                details={"path": str(self._path)},
                original_error=exc,
            ) from exc
