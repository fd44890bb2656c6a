# ============================================================================
# LicenseKeeper - Whitelist Automation System
# Copyright © 2025 404ConnerNotFound. All Rights Reserved.
# ============================================================================

import json
import logging
import pathlib
import threading
from dataclasses import asdict, dataclass
from typing import Optional

from .allowlist import write_json_atomic

logger = logging.getLogger(__name__)


@dataclass
class LogSettings:
    """Audit mirroring configuration"""
    logs_enabled: bool = False
    logs_channel_id: Optional[int] = None

    @property
    def mirroring(self) -> bool:
        return self.logs_enabled and self.logs_channel_id is not None


class SettingsStore:
    """settings.json, re-read on every load so concurrent admin edits are last-write-wins"""

    def __init__(self, path: str):
        self.path = pathlib.Path(path)
        self._lock = threading.Lock()

    def load(self) -> LogSettings:
        if not self.path.exists():
            return LogSettings()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
            channel_id = raw.get('logs_channel_id')
            return LogSettings(
                logs_enabled=bool(raw.get('logs_enabled', False)),
                logs_channel_id=int(channel_id) if channel_id is not None else None,
            )
        except (OSError, ValueError, TypeError) as e:
            logger.error(f"Error reading {self.path}: {e}")
            return LogSettings()

    def save(self, settings: LogSettings) -> None:
        with self._lock:
            write_json_atomic(self.path, asdict(settings))
        logger.debug(f"Saved log settings: {settings}")

    def set_channel(self, channel_id: int) -> LogSettings:
        settings = self.load()
        settings.logs_channel_id = int(channel_id)
        self.save(settings)
        return settings

    def set_enabled(self, enabled: bool) -> LogSettings:
        settings = self.load()
        settings.logs_enabled = enabled
        self.save(settings)
        return settings
