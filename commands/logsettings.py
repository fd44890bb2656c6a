# ============================================================================
# LicenseKeeper - Whitelist Automation System
# Copyright © 2025 404ConnerNotFound. All Rights Reserved.
# ============================================================================

import discord
from discord.ext import commands
from discord import app_commands
import logging
from datetime import datetime
from typing import Optional

from Utils.licensekeeper import get_settings_store

logger = logging.getLogger(__name__)


class LogSettingsCog(commands.Cog):
    """Configure mirroring of whitelist activity to a log channel"""

    def __init__(self, bot):
        self.bot = bot
        self.settings_store = get_settings_store()
        logger.info("LogSettingsCog initialized")

    @app_commands.command(name="logsettings", description="📝 Configure the whitelist activity log channel")
    @app_commands.describe(
        action="What to change",
        channel="Channel to log activity to (for 'Set Channel')"
    )
    @app_commands.choices(action=[
        app_commands.Choice(name="Set Channel", value="set_channel"),
        app_commands.Choice(name="Enable", value="enable"),
        app_commands.Choice(name="Disable", value="disable"),
        app_commands.Choice(name="Show Current", value="show")
    ])
    async def logsettings(
        self,
        interaction: discord.Interaction,
        action: str,
        channel: Optional[discord.TextChannel] = None
    ):
        await interaction.response.defer(ephemeral=True)

        try:
            if not interaction.user.guild_permissions.administrator:
                embed = discord.Embed(
                    title="🔒 Admin Only",
                    description="Only administrators can configure activity logging.",
                    color=discord.Color.red()
                )
                await interaction.followup.send(embed=embed, ephemeral=True)
                return

            if action == "set_channel":
                if not channel:
                    embed = discord.Embed(
                        title="❌ Missing Channel",
                        description="Please specify a channel for activity logging.",
                        color=discord.Color.red()
                    )
                    embed.add_field(
                        name="💡 Usage",
                        value="`/logsettings action:Set Channel channel:#whitelist-log`",
                        inline=False
                    )
                    await interaction.followup.send(embed=embed, ephemeral=True)
                    return

                self.settings_store.set_channel(channel.id)
                embed = discord.Embed(
                    title="✅ Log Channel Set",
                    description=f"Whitelist activity will be logged to {channel.mention} while logging is enabled.",
                    color=discord.Color.green()
                )
                logger.info(f"Log channel set to {channel.id} by {interaction.user.id}")

            elif action in ("enable", "disable"):
                enabled = action == "enable"
                settings = self.settings_store.set_enabled(enabled)
                embed = discord.Embed(
                    title=f"✅ Logging {'Enabled' if enabled else 'Disabled'}",
                    description=f"Whitelist activity logging is now **{'on' if enabled else 'off'}**.",
                    color=discord.Color.green()
                )
                if enabled and not settings.logs_channel_id:
                    embed.add_field(
                        name="⚠️ No Channel",
                        value="Use `/logsettings action:Set Channel` to pick where logs go.",
                        inline=False
                    )
                logger.info(f"Log mirroring {'enabled' if enabled else 'disabled'} by {interaction.user.id}")

            else:
                settings = self.settings_store.load()
                embed = discord.Embed(
                    title="📝 Log Settings",
                    color=discord.Color.blue(),
                    timestamp=datetime.now()
                )
                embed.add_field(
                    name="Logging",
                    value="**enabled**" if settings.logs_enabled else "**disabled**",
                    inline=True
                )
                embed.add_field(
                    name="Channel",
                    value=f"<#{settings.logs_channel_id}>" if settings.logs_channel_id else "Not set",
                    inline=True
                )

            await interaction.followup.send(embed=embed, ephemeral=True)

        except Exception as e:
            logger.error(f"Error in logsettings command: {e}", exc_info=True)
            embed = discord.Embed(
                title="❌ Error",
                description="Failed to update log settings.",
                color=discord.Color.red()
            )
            await interaction.followup.send(embed=embed, ephemeral=True)


async def setup(bot):
    await bot.add_cog(LogSettingsCog(bot))
