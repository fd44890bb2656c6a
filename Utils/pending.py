# ============================================================================
# LicenseKeeper - Whitelist Automation System
# Copyright © 2025 404ConnerNotFound. All Rights Reserved.
# ============================================================================

import json
import logging
import pathlib
import secrets
import threading
import time
from dataclasses import asdict, dataclass
from typing import Dict, Optional

from .allowlist import write_json_atomic
from .systems import GENERATED_KEY_PREFIX

logger = logging.getLogger(__name__)

LOCAL_EMAIL = "GENERATED_LOCALLY"


@dataclass
class PendingGrant:
    """A key awaiting its first redemption"""
    email: Optional[str]
    system: str
    timestamp: int


def generate_key(system_name: str) -> str:
    segments = [secrets.token_hex(2).upper() for _ in range(4)]
    return f"{GENERATED_KEY_PREFIX}{system_name}-{'-'.join(segments)}"


class PendingLedger:
    """pending_licenses.json: key string -> {email, system, timestamp}"""

    def __init__(self, path: str):
        self.path = pathlib.Path(path)
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, dict]:
        if not self.path.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            return json.load(f)

    def get(self, license_key: str) -> Optional[PendingGrant]:
        with self._lock:
            record = self._load().get(license_key)
        if record is None:
            return None
        return PendingGrant(
            email=record.get('email'),
            system=record['system'],
            timestamp=int(record.get('timestamp', 0)),
        )

    def __contains__(self, license_key: str) -> bool:
        return self.get(license_key) is not None

    def add(self, license_key: str, system: str, email: Optional[str] = None,
            timestamp: Optional[int] = None) -> PendingGrant:
        grant = PendingGrant(
            email=email,
            system=system,
            timestamp=timestamp if timestamp is not None else int(time.time() * 1000),
        )
        with self._lock:
            pending = self._load()
            pending[license_key] = asdict(grant)
            write_json_atomic(self.path, pending)
        return grant

    def add_many(self, grants: Dict[str, PendingGrant]) -> None:
        if not grants:
            return
        with self._lock:
            pending = self._load()
            for license_key, grant in grants.items():
                pending[license_key] = asdict(grant)
            write_json_atomic(self.path, pending)
        logger.info(f"Stored pending licenses: {', '.join(grants)}")

    def pop(self, license_key: str) -> Optional[PendingGrant]:
        with self._lock:
            pending = self._load()
            record = pending.pop(license_key, None)
            if record is not None:
                write_json_atomic(self.path, pending)
        if record is None:
            return None
        return PendingGrant(email=record.get('email'), system=record['system'],
                            timestamp=int(record.get('timestamp', 0)))

    def mint(self, system_name: str) -> str:
        """Create and store a locally-generated key"""
        key = generate_key(system_name)
        self.add(key, system_name, email=LOCAL_EMAIL)
        logger.info(f"Generated local key for {system_name}")
        return key

    def all(self) -> Dict[str, dict]:
        with self._lock:
            return self._load()
