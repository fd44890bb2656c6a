import discord
from discord.ext import commands
from discord import app_commands

import logging
import pathlib
import os

from Utils.licensekeeper import close_shared_keeper

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

class Bot(commands.Bot):
    def __init__(self, prefix: str, intents: discord.Intents, guild_id: int = None):
        super().__init__(command_prefix=prefix, intents=intents)
        self.added_cogs = []
        self.guild_id = guild_id if guild_id is not None else int(os.getenv("DISCORD_GUILD_ID", 0))

    async def setup_hook(self):
        for dir in os.walk('commands'):
            for file in dir[2]:
                if file.endswith('.py') and not file.startswith('__'):
                    path = pathlib.Path(dir[0]) / file
                    cog = f"{path.parent.as_posix().replace('/', '.')}.{path.stem}"
                    try:
                        await self.load_extension(cog)
                        self.added_cogs.append(cog)
                        logger.log(logging.INFO, f'Loaded cog: {cog}')
                    except Exception as e:
                        logger.log(logging.ERROR, f'Failed to load cog {cog}: {e}')

        self.tree.on_error = self.on_app_command_error

        if self.guild_id:
            guild = discord.Object(id=self.guild_id)
            self.tree.copy_global_to(guild=guild)
            synced = await self.tree.sync(guild=guild)
            logger.log(logging.INFO, f'Synced {len(synced)} commands to guild {self.guild_id}.')
        else:
            synced = await self.tree.sync()
            logger.log(logging.INFO, f'Synced {len(synced)} global commands.')

    async def on_ready(self):
        logger.log(logging.INFO, f'Logged in as {self.user} (ID: {self.user.id})')

    async def on_command_error(self, ctx: commands.Context, error):
        logger.log(logging.ERROR, f'Error occurred in command "{ctx.command}": {error}')

    async def on_app_command_error(self, interaction: discord.Interaction, error: app_commands.AppCommandError):
        command = interaction.command.name if interaction.command else "unknown"
        logger.error(f'Unhandled error in /{command}: {error}', exc_info=error)

        embed = discord.Embed(
            title="❌ Unexpected Error",
            description="There was an error executing that command.",
            color=discord.Color.red()
        )
        try:
            if interaction.response.is_done():
                await interaction.followup.send(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException as e:
            logger.warning(f'Could not report error for /{command}: {e}')

    async def close(self):
        await close_shared_keeper()
        await super().close()
