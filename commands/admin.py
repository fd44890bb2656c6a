# ============================================================================
# LicenseKeeper - Whitelist Automation System
# Copyright © 2025 404ConnerNotFound. All Rights Reserved.
# ============================================================================

import discord
from discord.ext import commands
from discord import app_commands
import logging
from typing import Optional

from Utils.licensekeeper import (
    get_shared_keeper,
    get_settings_store,
    CommandContext,
)
from Utils.exceptions import LicenseKeeperError
from commands.whitelist import SYSTEM_CHOICES

logger = logging.getLogger(__name__)


class WhitelistAdminCog(commands.Cog):
    """Administrator commands - revoke, force whitelist, lookups, audit log, key generation"""

    def __init__(self, bot):
        self.bot = bot
        self.keeper = None
        self.admin_metrics = {
            'admin_commands': 0,
            'denied': 0
        }
        logger.info("WhitelistAdminCog initialized")

    async def cog_load(self):
        try:
            self.keeper = await get_shared_keeper(self.bot)
            logger.info("WhitelistAdminCog connected to license keeper")
        except Exception as e:
            logger.error(f"Failed to initialize admin system: {e}")

    async def _ensure_initialized(self):
        if not self.keeper:
            try:
                self.keeper = await get_shared_keeper(self.bot)
            except Exception as e:
                logger.error(f"Failed to reinitialize license keeper: {e}")
                raise commands.CommandError("🔧 Admin system temporarily unavailable.")

    async def _require_admin(self, interaction: discord.Interaction) -> bool:
        permissions = getattr(interaction.user, "guild_permissions", None)
        if permissions and permissions.administrator:
            return True

        self.admin_metrics['denied'] += 1
        embed = discord.Embed(
            title="🔒 Permission Denied",
            description="Only administrators can use this command.",
            color=discord.Color.red()
        )
        await interaction.response.send_message(embed=embed, ephemeral=True)
        return False

    def _create_error_embed(self, error: LicenseKeeperError) -> discord.Embed:
        embed = discord.Embed(
            title="❌ Error",
            description=error.message,
            color=discord.Color.red()
        )
        embed.add_field(name="Error Code", value=f"`{error.error_code}`", inline=True)
        return embed

    def _create_generic_error_embed(self, error: Exception) -> discord.Embed:
        embed = discord.Embed(
            title="❌ Unexpected Error",
            description="An unexpected error occurred.",
            color=discord.Color.red()
        )
        embed.add_field(name="🆔 Error ID", value=f"`{hash(str(error)) % 100000:05d}`", inline=True)
        return embed

    async def _fail(self, interaction: discord.Interaction, command: str, error: Exception):
        if isinstance(error, LicenseKeeperError):
            embed = self._create_error_embed(error)
        else:
            logger.error(f"Admin /{command} error: {error}", exc_info=True)
            embed = self._create_generic_error_embed(error)
        await interaction.followup.send(embed=embed, ephemeral=True)

    def _context(self, interaction: discord.Interaction) -> CommandContext:
        return CommandContext(user_id=str(interaction.user.id), settings=get_settings_store().load())

    @app_commands.command(name="revoke", description="⛔ Revoke a whitelist by license key, Discord ID or Roblox ID")
    @app_commands.describe(
        target="License key, Discord user ID or Roblox user ID",
        system="Only revoke this system"
    )
    @app_commands.choices(system=SYSTEM_CHOICES)
    async def revoke(self, interaction: discord.Interaction, target: str, system: Optional[str] = None):
        if not await self._require_admin(interaction):
            return
        await interaction.response.defer(ephemeral=True)

        try:
            await self._ensure_initialized()
            result = await self.keeper.revoke(self._context(interaction), target, system)

            systems = ", ".join(sorted({r.system for r in result.revoked}))
            embed = discord.Embed(
                title="⛔ Whitelist Revoked",
                description=f"Revoked **{len(result.revoked)}** whitelist(s) from <@{result.discord_id}>.",
                color=discord.Color.orange()
            )
            embed.add_field(name="Systems", value=systems, inline=True)
            embed.add_field(name="Matched By", value=result.resolved_by, inline=True)

            await interaction.followup.send(embed=embed, ephemeral=True)
            self.admin_metrics['admin_commands'] += 1

        except Exception as e:
            await self._fail(interaction, "revoke", e)

    @app_commands.command(name="force_whitelist", description="🛠️ Whitelist a Roblox ID without a license")
    @app_commands.describe(roblox_id="Roblox user ID to whitelist", system="System to whitelist for")
    @app_commands.choices(system=SYSTEM_CHOICES)
    async def force_whitelist(self, interaction: discord.Interaction, roblox_id: str, system: str):
        if not await self._require_admin(interaction):
            return
        await interaction.response.defer(ephemeral=True)

        try:
            await self._ensure_initialized()
            result = await self.keeper.force_grant(self._context(interaction), roblox_id, system)

            embed = discord.Embed(
                title="🛠️ Force Whitelisted",
                description=f"Roblox ID `{roblox_id}` is now whitelisted for **{result.system.name}**.",
                color=discord.Color.green()
            )
            embed.add_field(name="Record Key", value=f"`{result.redemption.license_key}`", inline=False)
            await interaction.followup.send(embed=embed, ephemeral=True)
            self.admin_metrics['admin_commands'] += 1

        except Exception as e:
            await self._fail(interaction, "force_whitelist", e)

    @app_commands.command(name="view_whitelist", description="🔍 Look up a user's whitelist entries")
    @app_commands.describe(discord_or_roblox="Discord user ID, Roblox user ID or license key")
    async def view_whitelist(self, interaction: discord.Interaction, discord_or_roblox: str):
        if not await self._require_admin(interaction):
            return
        await interaction.response.defer(ephemeral=True)

        try:
            await self._ensure_initialized()
            discord_id, redemptions = await self.keeper.lookup(discord_or_roblox)

            embed = discord.Embed(
                title="🔍 Whitelist Entries",
                description=f"<@{discord_id}> (`{discord_id}`)",
                color=discord.Color.blue()
            )
            for r in redemptions[:25]:
                embed.add_field(
                    name=r.system,
                    value=(f"Roblox ID: `{r.roblox_id or 'None'}`\n"
                           f"Redeemed: <t:{r.verified_at // 1000}:f>\n"
                           f"Cooldown ends: <t:{r.cooldown_ends_at // 1000}:f>"),
                    inline=False
                )
            await interaction.followup.send(embed=embed, ephemeral=True)

        except Exception as e:
            await self._fail(interaction, "view_whitelist", e)

    @app_commands.command(name="logs", description="📜 Show recent whitelist activity")
    @app_commands.describe(limit="Number of entries to show (default 10)")
    async def logs(self, interaction: discord.Interaction, limit: Optional[int] = 10):
        if not await self._require_admin(interaction):
            return
        await interaction.response.defer(ephemeral=True)

        try:
            await self._ensure_initialized()
            events = await self.keeper.recent_events(limit)

            if not events:
                description = "No activity recorded yet."
            else:
                description = "\n".join(
                    f"<t:{event.timestamp // 1000}:f> {event.describe()}" for event in events
                )
            embed = discord.Embed(
                title="📜 Recent Activity",
                description=description[:4096],
                color=discord.Color.blue()
            )
            await interaction.followup.send(embed=embed, ephemeral=True)

        except Exception as e:
            await self._fail(interaction, "logs", e)

    @app_commands.command(name="generate_key", description="🔑 Generate a redeemable license key")
    @app_commands.describe(system="System the key unlocks")
    @app_commands.choices(system=SYSTEM_CHOICES)
    async def generate_key(self, interaction: discord.Interaction, system: str):
        if not await self._require_admin(interaction):
            return
        await interaction.response.defer(ephemeral=True)

        try:
            await self._ensure_initialized()
            key = await self.keeper.generate_key(self._context(interaction), system)

            embed = discord.Embed(
                title="🔑 License Key Generated",
                description=f"```{key}```",
                color=discord.Color.blue()
            )
            embed.add_field(name="System", value=system, inline=True)
            embed.add_field(name="Redeem With", value="`/whitelist`", inline=True)
            await interaction.followup.send(embed=embed, ephemeral=True)
            self.admin_metrics['admin_commands'] += 1

        except Exception as e:
            await self._fail(interaction, "generate_key", e)

    @app_commands.command(name="rebuild_whitelists", description="🧱 Rebuild every whitelist file from the database")
    async def rebuild_whitelists(self, interaction: discord.Interaction):
        if not await self._require_admin(interaction):
            return
        await interaction.response.defer(ephemeral=True)

        try:
            await self._ensure_initialized()
            counts = await self.keeper.rebuild_allowlists()

            embed = discord.Embed(
                title="🧱 Whitelists Rebuilt",
                color=discord.Color.green()
            )
            for name, count in counts.items():
                embed.add_field(name=name, value=f"{count} ID(s)", inline=True)
            await interaction.followup.send(embed=embed, ephemeral=True)

        except Exception as e:
            await self._fail(interaction, "rebuild_whitelists", e)


async def setup(bot):
    await bot.add_cog(WhitelistAdminCog(bot))
