"""Main entry point for the application."""

import logging
import sys

from venue_admin.bot import VenueAdminBot, register_event_handlers
from venue_admin.commands.content_commands import setup_commands as setup_content_commands
from venue_admin.commands.resource_commands import setup_commands as setup_resource_commands
from venue_admin.commands.session_commands import setup_commands as setup_session_commands
from venue_admin.commands.support_commands import setup_commands as setup_support_commands
from venue_admin.config import get_config_value, validate_config
from venue_admin.logging_setup import setup_logging

# Setup logging first
setup_logging()

logger = logging.getLogger(__name__)

validate_config()

if __name__ == "__main__":
    try:
        logger.info("Starting Venue Admin Console")

        api_base_url = get_config_value("api.base_url")
        discord_token = get_config_value("discord.token")

        if not all([api_base_url, discord_token]):
            logger.critical(
                "Missing API base URL or Discord token. Please check your config.yaml and .env file."
            )
            sys.exit(1)

        bot = VenueAdminBot(api_base_url)
        register_event_handlers(bot)

        setup_session_commands(bot)
        logger.debug("Session commands setup.")
        setup_resource_commands(bot)
        logger.debug("Resource commands setup.")
        setup_support_commands(bot)
        logger.debug("Support commands setup.")
        setup_content_commands(bot)
        logger.debug("Content commands setup.")

        # discord.py would otherwise install its own root handler
        bot.run(discord_token, log_handler=None)
    except Exception as e:
        logger.critical(f"Failed to start bot: {e}", exc_info=True)
        sys.exit(1)
