# ============================================================================
# LicenseKeeper - Whitelist Automation System
# Copyright © 2025 404ConnerNotFound. All Rights Reserved.
# ============================================================================

import os
from dotenv import load_dotenv
import logging
import discord

from Core.Bot import Bot
from Utils.licensekeeper import configure_logging

load_dotenv()

configure_logging(logging.INFO)
logger = logging.getLogger(__name__)

if __name__ == '__main__':
    TOKEN = os.getenv("DISCORD_AUTH_TOKEN")
    PREFIX = os.getenv("COMMAND_PREFIX", ".")

    if not TOKEN:
        logger.error("DISCORD_AUTH_TOKEN is not set. Exiting.")
        raise SystemExit(1)

    intents = discord.Intents.default()
    intents.members = True

    bot = Bot(prefix=PREFIX, intents=intents)

    bot.run(TOKEN, log_handler=None)
