# ============================================================================
# LicenseKeeper - Whitelist Automation System
# Copyright © 2025 404ConnerNotFound. All Rights Reserved.
# ============================================================================

import json
import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from cachetools import TTLCache

from .settings import LogSettings

logger = logging.getLogger(__name__)


class AuditKind(str, Enum):
    REDEEMED = "redeemed"
    UPDATED = "updated"
    REVOKED = "revoked"
    FORCE_GRANTED = "force_granted"
    JOIN_ACCEPTED = "join_accepted"
    KEY_GENERATED = "key_generated"


AUDIT_ICONS = {
    AuditKind.REDEEMED.value: "✅",
    AuditKind.UPDATED.value: "🔄",
    AuditKind.REVOKED.value: "⛔",
    AuditKind.FORCE_GRANTED.value: "🛠️",
    AuditKind.JOIN_ACCEPTED.value: "🤝",
    AuditKind.KEY_GENERATED.value: "🔑",
}


@dataclass
class AuditEvent:
    """Append-only record of an action"""
    kind: str
    actor_id: Optional[str]
    target_id: Optional[str]
    system: Optional[str]
    timestamp: int

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, raw) -> "AuditEvent":
        data = json.loads(raw)
        return cls(
            kind=data['kind'],
            actor_id=data.get('actor_id'),
            target_id=data.get('target_id'),
            system=data.get('system'),
            timestamp=int(data['timestamp']),
        )

    def describe(self) -> str:
        icon = AUDIT_ICONS.get(self.kind, "📝")
        text = f"{icon} **{self.kind.upper()}**: <@{self.actor_id}>"
        if self.target_id:
            text += f" (target: `{self.target_id}`)"
        if self.system:
            text += f" for **{self.system}**"
        return text


class AuditMirror:
    """Sends audit events to the configured Discord channel when mirroring is enabled"""

    def __init__(self, bot):
        self.bot = bot
        self.channel_cache = TTLCache(maxsize=32, ttl=300)

    async def _get_channel(self, channel_id: int):
        channel = self.channel_cache.get(channel_id)
        if channel is not None:
            return channel

        channel = self.bot.get_channel(channel_id)
        if channel is None:
            channel = await self.bot.fetch_channel(channel_id)
        self.channel_cache[channel_id] = channel
        return channel

    async def publish(self, settings: Optional[LogSettings], event: AuditEvent) -> bool:
        if not settings or not settings.mirroring:
            return False

        try:
            channel = await self._get_channel(settings.logs_channel_id)
            if channel is None or not hasattr(channel, "send"):
                logger.warning(f"Log channel {settings.logs_channel_id} is not a text channel")
                return False
            stamp = datetime.fromtimestamp(event.timestamp / 1000, tz=timezone.utc).isoformat()
            await channel.send(f"📝 [{stamp}] {event.describe()}")
            return True
        except Exception as e:
            logger.error(f"Failed to send log message to channel: {e}")
            return False
