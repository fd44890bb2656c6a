# ============================================================================
# LicenseKeeper - Whitelist Automation System
# Copyright © 2025 404ConnerNotFound. All Rights Reserved.
# ============================================================================

import logging
import os
from typing import Iterable, List, Optional, Set, Tuple

import discord

from .exceptions import MemberNotFoundError
from .systems import SYSTEMS, SystemDefinition

logger = logging.getLogger(__name__)


class DiscordRoleManager:
    """Mirrors ownership as buyer roles in the configured guild"""

    def __init__(self, bot, guild_id: int = None):
        self.bot = bot
        self.guild_id = guild_id if guild_id is not None else int(os.getenv("DISCORD_GUILD_ID", 0))
        self.role_metrics = {
            'role_assignments_successful': 0,
            'role_assignments_failed': 0,
        }

    async def _get_member(self, discord_id: str) -> Optional[discord.Member]:
        guild = self.bot.get_guild(self.guild_id)
        if not guild:
            logger.warning(f"Guild {self.guild_id} not found in client cache")
            return None

        member = guild.get_member(int(discord_id))
        if member:
            return member
        try:
            return await guild.fetch_member(int(discord_id))
        except (discord.NotFound, discord.HTTPException) as e:
            logger.warning(f"Could not fetch member {discord_id}: {e}")
            return None

    async def grant(self, discord_id: str, system: SystemDefinition) -> bool:
        """Best-effort; failures are logged and reported as False"""
        try:
            member = await self._get_member(discord_id)
            if not member:
                self.role_metrics['role_assignments_failed'] += 1
                return False
            await member.add_roles(discord.Object(id=system.role_id), reason=f"Redeemed {system.name}")
            self.role_metrics['role_assignments_successful'] += 1
            return True
        except Exception as e:
            logger.warning(f"Could not assign role for system {system.name} to {discord_id}: {e}")
            self.role_metrics['role_assignments_failed'] += 1
            return False

    async def revoke(self, discord_id: str, system: SystemDefinition) -> bool:
        try:
            member = await self._get_member(discord_id)
            if not member:
                return False
            await member.remove_roles(discord.Object(id=system.role_id), reason=f"Revoked {system.name}")
            return True
        except Exception as e:
            logger.warning(f"Could not remove role for system {system.name} from {discord_id}: {e}")
            return False

    async def resync(self, discord_id: str, owned: Set[str],
                     systems: Iterable[SystemDefinition] = None) -> Tuple[List[str], List[str]]:
        """Make the member's buyer roles match exactly the owned systems"""
        member = await self._get_member(discord_id)
        if not member:
            raise MemberNotFoundError(
                "There was an error fetching your member profile. Please try again.",
                context={'discord_id': discord_id})

        held = {role.id for role in member.roles}
        added, removed = [], []

        for system in systems if systems is not None else SYSTEMS:
            should_have = system.name in owned
            has_role = system.role_id in held

            if should_have and not has_role:
                try:
                    await member.add_roles(discord.Object(id=system.role_id), reason="Role sync")
                    added.append(system.name)
                except Exception as e:
                    logger.warning(f"Failed to add role for system {system.name} to user {discord_id}: {e}")
            elif not should_have and has_role:
                try:
                    await member.remove_roles(discord.Object(id=system.role_id), reason="Role sync")
                    removed.append(system.name)
                except Exception as e:
                    logger.warning(f"Failed to remove role for system {system.name} from user {discord_id}: {e}")

        logger.info(f"Role sync for {discord_id}: added={added}, removed={removed}")
        return added, removed
