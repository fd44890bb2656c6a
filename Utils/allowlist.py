# ============================================================================
# LicenseKeeper - Whitelist Automation System
# Copyright © 2025 404ConnerNotFound. All Rights Reserved.
# ============================================================================

import json
import logging
import os
import pathlib
import tempfile
import threading
from typing import Dict, Iterable, List, Optional

from .systems import SystemDefinition

logger = logging.getLogger(__name__)


def write_json_atomic(path: pathlib.Path, data) -> None:
    """Write JSON next to the target and swap it in with os.replace"""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


class AllowListStore:
    """Per-system allow-list files, each behind its own lock.

    A list is a JSON array of Roblox id strings. Every mutation is a
    read-modify-write under the system's lock, so the bot loop and the
    HTTP thread never lose each other's updates.
    """

    def __init__(self, data_dir: str):
        self.data_dir = pathlib.Path(data_dir)
        self._locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, system: SystemDefinition) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(system.name)
            if lock is None:
                lock = self._locks[system.name] = threading.Lock()
            return lock

    def path_for(self, system: SystemDefinition) -> pathlib.Path:
        return self.data_dir / system.file

    def exists(self, system: SystemDefinition) -> bool:
        return self.path_for(system).exists()

    def _read(self, system: SystemDefinition) -> List[str]:
        path = self.path_for(system)
        if not path.exists():
            return []
        with open(path, "r", encoding="utf-8") as f:
            entries = json.load(f)
        return [str(e) for e in entries]

    def read(self, system: SystemDefinition) -> List[str]:
        with self._lock_for(system):
            return self._read(system)

    def add(self, system: SystemDefinition, roblox_id: str) -> bool:
        """Append if absent. Returns True when the file changed."""
        with self._lock_for(system):
            entries = self._read(system)
            if roblox_id in entries:
                return False
            entries.append(roblox_id)
            write_json_atomic(self.path_for(system), entries)
        logger.info(f"Allow-listed {roblox_id} for {system.name}")
        return True

    def remove(self, system: SystemDefinition, roblox_id: Optional[str]) -> bool:
        if not roblox_id:
            return False
        with self._lock_for(system):
            entries = self._read(system)
            if roblox_id not in entries:
                return False
            entries = [e for e in entries if e != roblox_id]
            write_json_atomic(self.path_for(system), entries)
        logger.info(f"Removed {roblox_id} from {system.name} allow-list")
        return True

    def overwrite(self, system: SystemDefinition, roblox_ids: Iterable[str]) -> List[str]:
        """Replace the whole list, dropping duplicates but keeping first-seen order"""
        entries = list(dict.fromkeys(str(r) for r in roblox_ids if r))
        with self._lock_for(system):
            write_json_atomic(self.path_for(system), entries)
        return entries
