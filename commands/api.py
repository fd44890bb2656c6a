# ============================================================================
# LicenseKeeper - Whitelist Automation System
# Copyright © 2025 404ConnerNotFound. All Rights Reserved.
# ============================================================================

import discord
from discord.ext import commands
from discord import app_commands
import logging
import os
import threading

logger = logging.getLogger(__name__)


class APIManagementCog(commands.Cog):
    """Runs the webhook / whitelist HTTP server beside the bot"""

    def __init__(self, bot):
        self.bot = bot
        self.api_thread = None
        self.api_running = False
        logger.info("APIManagementCog initialized")

    async def cog_load(self):
        if os.getenv('AUTO_START_API', 'true').lower() == 'true':
            logger.info("Auto-starting HTTP API...")
            self.start_api()

    async def cog_unload(self):
        if self.api_running:
            # Daemon thread exits with the process
            self.api_running = False

    def start_api(self) -> bool:
        if self.api_running:
            logger.warning("API already running")
            return False

        try:
            from API.app import run_api

            def run_api_thread():
                try:
                    host = os.getenv('API_HOST', '0.0.0.0')
                    port = int(os.getenv('API_PORT', 3000))
                    run_api(host=host, port=port)
                except Exception as e:
                    logger.error(f"API server error: {e}", exc_info=True)
                    self.api_running = False

            self.api_thread = threading.Thread(target=run_api_thread, name="licensekeeper-api", daemon=True)
            self.api_thread.start()
            self.api_running = True

            logger.info("HTTP API started")
            return True

        except Exception as e:
            logger.error(f"Failed to start API: {e}")
            return False

    @app_commands.command(name="api", description="🔧 Show or start the webhook server (Admin only)")
    @app_commands.describe(action="Action to perform")
    @app_commands.choices(action=[
        app_commands.Choice(name="Start", value="start"),
        app_commands.Choice(name="Status", value="status")
    ])
    async def api_command(self, interaction: discord.Interaction, action: str):
        if not interaction.user.guild_permissions.administrator:
            embed = discord.Embed(
                title="🔒 Admin Only",
                description="Only administrators can manage the API server.",
                color=discord.Color.red()
            )
            await interaction.response.send_message(embed=embed, ephemeral=True)
            return

        await interaction.response.defer(ephemeral=True)

        host = os.getenv('API_HOST', '0.0.0.0')
        port = int(os.getenv('API_PORT', 3000))

        if action == "start" and not self.api_running:
            if self.start_api():
                embed = discord.Embed(
                    title="✅ API Started",
                    description="Webhook server started.",
                    color=discord.Color.green()
                )
            else:
                embed = discord.Embed(
                    title="❌ API Start Failed",
                    description="Failed to start the API server. Check logs for details.",
                    color=discord.Color.red()
                )
        elif self.api_running:
            embed = discord.Embed(
                title="✅ API Status",
                description="Webhook server is **running**",
                color=discord.Color.green()
            )
            embed.add_field(name="Webhook", value=f"`POST http://{host}:{port}/payhip-webhook`", inline=False)
            embed.add_field(name="Whitelists", value=f"`GET http://{host}:{port}/whitelist/<system>`", inline=False)
        else:
            embed = discord.Embed(
                title="⚠️ API Status",
                description="Webhook server is **not running**. Use `/api start`.",
                color=discord.Color.orange()
            )

        await interaction.followup.send(embed=embed, ephemeral=True)


async def setup(bot):
    await bot.add_cog(APIManagementCog(bot))
