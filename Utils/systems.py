# ============================================================================
# LicenseKeeper - Whitelist Automation System
# Copyright © 2025 404ConnerNotFound. All Rights Reserved.
# ============================================================================

import os
from dataclasses import dataclass
from typing import List, Optional

# 30 days in milliseconds
COOLDOWN_MS = 30 * 24 * 60 * 60 * 1000
DAY_MS = 24 * 60 * 60 * 1000

GENERATED_KEY_PREFIX = "GEN-"
FORCED_KEY_PREFIX = "FORCE-"


@dataclass(frozen=True)
class SystemDefinition:
    """One purchasable system and where its access is mirrored"""
    name: str
    file: str
    role_id: int
    group_id: str

    @property
    def api_key_env(self) -> str:
        return f"APIKEY_{self.name.upper().replace(' ', '_')}"

    def api_key(self) -> Optional[str]:
        return os.getenv(self.api_key_env)

    @property
    def group_url(self) -> str:
        return f"https://www.roblox.com/groups/{self.group_id}"


SYSTEMS: List[SystemDefinition] = [
    SystemDefinition("Speeders", "whitelist_speeders.json", 1379224887071084620, "7498327"),
    SystemDefinition("Ship System", "whitelist_ship_system.json", 1379224887071084619, "33752338"),
    SystemDefinition("Lightsabers", "whitelist_lightsabers.json", 1379224887071084618, "32064664"),
    SystemDefinition("Blasters", "whitelist_blasters.json", 1379224887071084617, "15804186"),
    SystemDefinition("Utilities", "whitelist_utilities.json", 1379224887071084616, "16517603"),
    SystemDefinition("Morph GUI", "whitelist_morph_gui.json", 1379224887071084615, "33816091"),
]


def find_system(name: Optional[str], systems: Optional[List[SystemDefinition]] = None) -> Optional[SystemDefinition]:
    """Case-insensitive lookup by system name"""
    if not isinstance(name, str) or not name.strip():
        return None
    wanted = name.strip().lower()
    for system in systems if systems is not None else SYSTEMS:
        if system.name.lower() == wanted:
            return system
    return None


def system_names(systems: Optional[List[SystemDefinition]] = None) -> List[str]:
    return [s.name for s in (systems if systems is not None else SYSTEMS)]
