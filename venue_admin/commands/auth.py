"""Authorization checks for console commands."""

import logging

import discord
from discord import app_commands

from venue_admin.config import get_config_value
from venue_admin.messaging import get_message

logger = logging.getLogger(__name__)


def has_authorized_role(member: discord.Member) -> bool:
    allowed = [str(r) for r in get_config_value("discord.command_authorized_roles", [])]
    return any(role.name in allowed or str(role.id) in allowed for role in member.roles)


def is_authorized():
    """Command must be used in a command channel by a member with a staff role."""

    async def predicate(interaction: discord.Interaction) -> bool:
        command_name = interaction.command.name if interaction.command else "Unknown"
        try:
            if not interaction.channel:
                await interaction.response.send_message(
                    get_message("errors.auth_no_channel"), ephemeral=True
                )
                return False

            if not interaction.client.is_command_channel(interaction.channel):
                logger.warning(
                    f"Auth check failed for {interaction.user}: '{command_name}' used outside command channels."
                )
                await interaction.response.send_message(
                    get_message("errors.not_in_command_channel"), ephemeral=True
                )
                return False

            if not isinstance(interaction.user, discord.Member):
                await interaction.response.send_message(
                    get_message("errors.auth_not_member"), ephemeral=True
                )
                return False

            if not get_config_value("discord.command_authorized_roles", []):
                logger.warning("No 'command_authorized_roles' configured. Denying command access.")
                await interaction.response.send_message(
                    get_message("errors.auth_config_error"), ephemeral=True
                )
                return False

            if not has_authorized_role(interaction.user):
                logger.warning(f"Auth check failed for {interaction.user}: missing staff role.")
                await interaction.response.send_message(
                    get_message("errors.not_authorized_command"), ephemeral=True
                )
                return False

            logger.debug(f"Authorization check passed for {interaction.user} ('{command_name}').")
            return True
        except Exception as e:
            logger.error(
                f"Error during command authorization check for user {interaction.user}: {str(e)}",
                exc_info=True,
            )
            if not interaction.response.is_done():
                await interaction.response.send_message(
                    get_message("errors.permission_check_error"), ephemeral=True
                )
            return False

    return app_commands.check(predicate)


def requires_session():
    """The console must be signed in to the backend (run /login first)."""

    async def predicate(interaction: discord.Interaction) -> bool:
        if interaction.client.session_store.is_authenticated():
            return True
        await interaction.response.send_message(
            get_message("session.login_required"), ephemeral=True
        )
        return False

    return app_commands.check(predicate)


async def command_error(interaction: discord.Interaction, error: app_commands.AppCommandError):
    """Shared error handler; failed checks have already answered."""
    if isinstance(error, app_commands.errors.CheckFailure):
        logger.debug(f"CheckFailure for user {interaction.user}: {error}")
        return
    logger.error(f"Unhandled command error: {type(error).__name__} - {error}", exc_info=error)
    message = get_message("errors.generic_command_error")
    if not interaction.response.is_done():
        await interaction.response.send_message(message, ephemeral=True)
    else:
        try:
            await interaction.followup.send(message, ephemeral=True)
        except discord.HTTPException:
            logger.error("Failed to send error followup message.")
