# ============================================================================
# LicenseKeeper - Whitelist Automation System
# Copyright © 2025 404ConnerNotFound. All Rights Reserved.
# ============================================================================

import discord
from discord.ext import commands
from discord import app_commands
import logging
from typing import List

from Utils.licensekeeper import (
    get_shared_keeper,
    get_settings_store,
    CommandContext,
    LicenseKeeper,
)
from Utils.exceptions import (
    CooldownActiveError,
    GroupServiceError,
    LicenseKeeperError,
)
from Utils.systems import SYSTEMS

logger = logging.getLogger(__name__)

SYSTEM_CHOICES: List[app_commands.Choice[str]] = [
    app_commands.Choice(name=system.name, value=system.name) for system in SYSTEMS
]


class WhitelistCog(commands.Cog):
    """Purchaser commands - redeem, update, status, history, role and group sync"""

    def __init__(self, bot):
        self.bot = bot
        self.keeper: LicenseKeeper = None

        self.command_metrics = {
            'whitelist_count': 0,
            'update_count': 0,
            'status_count': 0,
            'error_count': 0
        }

        logger.info("WhitelistCog initialized")

    async def cog_load(self):
        try:
            self.keeper = await get_shared_keeper(self.bot)
            logger.info("WhitelistCog connected to license keeper")
        except Exception as e:
            logger.error(f"Failed to initialize whitelist system: {e}", exc_info=True)

    async def _ensure_initialized(self):
        if not self.keeper:
            try:
                self.keeper = await get_shared_keeper(self.bot)
            except Exception as e:
                logger.error(f"Failed to reinitialize license keeper: {e}")
                raise commands.CommandError("🔧 Whitelist system temporarily unavailable.")

    def _context(self, interaction: discord.Interaction) -> CommandContext:
        return CommandContext(user_id=str(interaction.user.id), settings=get_settings_store().load())

    def _create_error_embed(self, error: LicenseKeeperError) -> discord.Embed:
        embed = discord.Embed(
            title="❌ Error",
            description=error.message,
            color=discord.Color.red()
        )
        embed.add_field(name="Error Code", value=f"`{error.error_code}`", inline=True)
        if isinstance(error, CooldownActiveError):
            embed.add_field(name="⏳ Next Change", value=f"<t:{error.cooldown_ends_at // 1000}:R>", inline=True)
        return embed

    def _create_generic_error_embed(self, error: Exception) -> discord.Embed:
        self.command_metrics['error_count'] += 1
        embed = discord.Embed(
            title="❌ Unexpected Error",
            description="An unexpected error occurred.",
            color=discord.Color.red()
        )
        embed.add_field(name="🆔 Error ID", value=f"`{hash(str(error)) % 100000:05d}`", inline=True)
        return embed

    async def _fail(self, interaction: discord.Interaction, command: str, error: Exception):
        if isinstance(error, LicenseKeeperError):
            logger.info(f"/{command} rejected for {interaction.user.id}: {error.error_code}")
            embed = self._create_error_embed(error)
        else:
            logger.error(f"/{command} error: {error}", exc_info=True)
            embed = self._create_generic_error_embed(error)
        await interaction.followup.send(embed=embed, ephemeral=True)

    @app_commands.command(name="whitelist", description="🔑 Redeem a license and whitelist your Roblox ID")
    @app_commands.describe(
        roblox_id="Your Roblox user ID",
        license_key="The license key from your purchase"
    )
    async def whitelist(self, interaction: discord.Interaction, roblox_id: str, license_key: str):
        await interaction.response.defer(ephemeral=True)

        try:
            await self._ensure_initialized()
            result = await self.keeper.redeem(self._context(interaction), roblox_id, license_key)

            embed = discord.Embed(
                title="✅ Whitelisted",
                description=f"You are now whitelisted for **{result.system.name}**!",
                color=discord.Color.green()
            )
            embed.add_field(name="Roblox ID", value=f"`{result.redemption.roblox_id}`", inline=True)
            embed.add_field(
                name="Next ID Change",
                value=f"<t:{result.redemption.cooldown_ends_at // 1000}:D>",
                inline=True
            )
            embed.add_field(name="Next Steps", value=result.join_hint, inline=False)
            if not result.role_granted:
                embed.set_footer(text="Your buyer role could not be assigned. Run /rolesync to retry.")

            await interaction.followup.send(embed=embed, ephemeral=True)
            self.command_metrics['whitelist_count'] += 1

        except Exception as e:
            await self._fail(interaction, "whitelist", e)

    @app_commands.command(name="update_whitelist", description="🔄 Change the Roblox ID whitelisted for a system")
    @app_commands.describe(system="The system to update", new_id="Your new Roblox user ID")
    @app_commands.choices(system=SYSTEM_CHOICES)
    async def update_whitelist(self, interaction: discord.Interaction, system: str, new_id: str):
        await interaction.response.defer(ephemeral=True)

        try:
            await self._ensure_initialized()
            redemption = await self.keeper.update_identity(self._context(interaction), system, new_id)

            embed = discord.Embed(
                title="🔄 Whitelist Updated",
                description=f"Your whitelist for **{redemption.system}** now uses Roblox ID `{redemption.roblox_id}`.",
                color=discord.Color.blue()
            )
            embed.add_field(
                name="Next ID Change",
                value=f"<t:{redemption.cooldown_ends_at // 1000}:D>",
                inline=True
            )
            await interaction.followup.send(embed=embed, ephemeral=True)
            self.command_metrics['update_count'] += 1

        except Exception as e:
            await self._fail(interaction, "update_whitelist", e)

    @app_commands.command(name="status", description="📋 Show your whitelisted systems and cooldowns")
    async def status(self, interaction: discord.Interaction):
        await interaction.response.defer(ephemeral=True)

        try:
            await self._ensure_initialized()
            account, entries = await self.keeper.status(self._context(interaction))

            embed = discord.Embed(
                title="📋 Whitelist Status",
                description=f"Roblox ID: `{account.roblox_id or 'None'}`",
                color=discord.Color.blue()
            )
            for redemption, days_left in entries:
                if days_left > 0:
                    value = f"Can update in **{days_left}** day(s)"
                else:
                    value = "✅ Can update now"
                embed.add_field(name=redemption.system, value=value, inline=False)

            await interaction.followup.send(embed=embed, ephemeral=True)
            self.command_metrics['status_count'] += 1

        except Exception as e:
            await self._fail(interaction, "status", e)

    @app_commands.command(name="history", description="🧾 List every license you have redeemed")
    async def history(self, interaction: discord.Interaction):
        await interaction.response.defer(ephemeral=True)

        try:
            await self._ensure_initialized()
            redemptions = await self.keeper.history(self._context(interaction))

            lines = [
                f"• **{r.system}** – `{r.license_key}` – <t:{r.verified_at // 1000}:f>"
                for r in redemptions
            ]
            embed = discord.Embed(
                title="🧾 Redemption History",
                description="\n".join(lines),
                color=discord.Color.blue()
            )
            await interaction.followup.send(embed=embed, ephemeral=True)

        except Exception as e:
            await self._fail(interaction, "history", e)

    @app_commands.command(name="rolesync", description="🎭 Sync your buyer roles with your purchases")
    async def rolesync(self, interaction: discord.Interaction):
        await interaction.response.defer(ephemeral=True)

        try:
            await self._ensure_initialized()
            added, removed = await self.keeper.resync_roles(self._context(interaction))

            if not added and not removed:
                description = "Your roles are already up to date."
            else:
                parts = []
                if added:
                    parts.append(f"Added: {', '.join(added)}")
                if removed:
                    parts.append(f"Removed: {', '.join(removed)}")
                description = "\n".join(parts)

            embed = discord.Embed(
                title="🎭 Roles Synced",
                description=description,
                color=discord.Color.green()
            )
            await interaction.followup.send(embed=embed, ephemeral=True)

        except Exception as e:
            await self._fail(interaction, "rolesync", e)

    @app_commands.command(name="join_sync", description="🤝 Accept your pending Roblox group join request")
    @app_commands.describe(system="The system whose group you requested to join")
    @app_commands.choices(system=SYSTEM_CHOICES)
    async def join_sync(self, interaction: discord.Interaction, system: str):
        await interaction.response.defer(ephemeral=True)

        try:
            await self._ensure_initialized()
            roblox_id = await self.keeper.accept_join(self._context(interaction), system)

            embed = discord.Embed(
                title="🤝 Join Request Accepted",
                description=f"Roblox ID `{roblox_id}` has been accepted into the **{system}** group.",
                color=discord.Color.green()
            )
            await interaction.followup.send(embed=embed, ephemeral=True)

        except GroupServiceError as e:
            logger.warning(f"/join_sync group service failure for {interaction.user.id}: {e.message}")
            embed = self._create_error_embed(e)
            embed.description = (f"{e.message}\nMake sure you clicked “Join Group” in Roblox, "
                                 f"then try again in a minute.")
            await interaction.followup.send(embed=embed, ephemeral=True)
        except Exception as e:
            await self._fail(interaction, "join_sync", e)


async def setup(bot):
    await bot.add_cog(WhitelistCog(bot))
