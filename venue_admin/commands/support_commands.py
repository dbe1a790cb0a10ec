"""Support ticket and notification commands."""

import asyncio
import logging
from typing import Optional

import discord
from discord import app_commands

from venue_admin.commands.auth import command_error, is_authorized, requires_session
from venue_admin.messaging import create_embed, get_message, record_embed, response_embed
from venue_admin.models import ActionType
from venue_admin.resources import NOTIFICATIONS, TICKETS
from venue_admin.services import SupportService
from venue_admin.views import log_mutation

logger = logging.getLogger(__name__)

STATUS_CHOICES = [
    app_commands.Choice(name=s.replace("_", " ").title(), value=s)
    for s in SupportService.TICKET_STATUSES
]
PRIORITY_CHOICES = [
    app_commands.Choice(name=p.title(), value=p) for p in SupportService.TICKET_PRIORITIES
]


async def _send_result(interaction: discord.Interaction, response) -> None:
    await interaction.followup.send(embed=response_embed(response), ephemeral=True)


def setup_commands(bot):
    """Register ticket and notification commands with the bot."""

    @bot.tree.command(name="ticket-status", description="Change a support ticket's status.")
    @app_commands.choices(status=STATUS_CHOICES)
    @is_authorized()
    @requires_session()
    async def ticket_status(
        interaction: discord.Interaction,
        ticket_id: str,
        status: app_commands.Choice[str],
        admin_notes: Optional[str] = None,
    ):
        await interaction.response.defer(ephemeral=True, thinking=True)
        response = await asyncio.to_thread(
            interaction.client.support.update_status, ticket_id.strip(), status.value, admin_notes or ""
        )
        await _send_result(interaction, response)
        if response.success and status.value in ("resolved", "closed"):
            action = ActionType.RESOLVE if status.value == "resolved" else ActionType.CLOSE
            await log_mutation(interaction, TICKETS, action, ticket_id.strip(), admin_notes)

    @bot.tree.command(name="ticket-priority", description="Change a support ticket's priority.")
    @app_commands.choices(priority=PRIORITY_CHOICES)
    @is_authorized()
    @requires_session()
    async def ticket_priority(
        interaction: discord.Interaction, ticket_id: str, priority: app_commands.Choice[str]
    ):
        await interaction.response.defer(ephemeral=True, thinking=True)
        response = await asyncio.to_thread(
            interaction.client.support.update_priority, ticket_id.strip(), priority.value
        )
        await _send_result(interaction, response)

    @bot.tree.command(name="ticket-reply", description="Post a staff reply on a support ticket.")
    @is_authorized()
    @requires_session()
    async def ticket_reply(interaction: discord.Interaction, ticket_id: str, message: str):
        await interaction.response.defer(ephemeral=True, thinking=True)
        response = await asyncio.to_thread(
            interaction.client.support.reply, ticket_id.strip(), message
        )
        await _send_result(interaction, response)

    @bot.tree.command(name="ticket-stats", description="Ticket counts by status and priority.")
    @is_authorized()
    @requires_session()
    async def ticket_stats(interaction: discord.Interaction):
        await interaction.response.defer(ephemeral=True, thinking=True)
        response = await asyncio.to_thread(interaction.client.support.statistics)
        if not response.success:
            await _send_result(interaction, response)
            return
        stats = response.data
        fields = [(key.replace("_", " ").title(), str(value)) for key, value in stats.items()]
        await interaction.followup.send(
            embed=record_embed(get_message("tickets.stats_title"), fields), ephemeral=True
        )

    @bot.tree.command(name="notifications-unread", description="Show the unread notification count.")
    @is_authorized()
    @requires_session()
    async def notifications_unread(interaction: discord.Interaction):
        await interaction.response.defer(ephemeral=True, thinking=True)
        response = await asyncio.to_thread(interaction.client.notifications.unread_count)
        if not response.success:
            await _send_result(interaction, response)
            return
        embed = create_embed(
            title_key="notifications.unread_title",
            description_key="notifications.unread_description",
            description_kwargs={"unread": response.data},
        )
        await interaction.followup.send(embed=embed, ephemeral=True)

    @bot.tree.command(name="notification-read", description="Mark one notification read or unread.")
    @is_authorized()
    @requires_session()
    async def notification_read(
        interaction: discord.Interaction, notification_id: str, unread: bool = False
    ):
        await interaction.response.defer(ephemeral=True, thinking=True)
        service = interaction.client.notifications
        call = service.mark_unread if unread else service.mark_read
        response = await asyncio.to_thread(call, notification_id.strip())
        await _send_result(interaction, response)

    @bot.tree.command(name="notifications-read-all", description="Mark every notification as read.")
    @is_authorized()
    @requires_session()
    async def notifications_read_all(interaction: discord.Interaction):
        await interaction.response.defer(ephemeral=True, thinking=True)
        response = await asyncio.to_thread(interaction.client.notifications.mark_all_read)
        await _send_result(interaction, response)

    @bot.tree.command(name="notification-delete", description="Delete one notification.")
    @is_authorized()
    @requires_session()
    async def notification_delete(interaction: discord.Interaction, notification_id: str):
        await interaction.response.defer(ephemeral=True, thinking=True)
        response = await asyncio.to_thread(
            interaction.client.notifications.delete_notification, notification_id.strip()
        )
        await _send_result(interaction, response)
        if response.success:
            await log_mutation(interaction, NOTIFICATIONS, ActionType.DELETE, notification_id.strip(), None)

    @bot.tree.command(name="notifications-clear", description="Delete all notifications.")
    @is_authorized()
    @requires_session()
    async def notifications_clear(interaction: discord.Interaction):
        await interaction.response.defer(ephemeral=True, thinking=True)
        response = await asyncio.to_thread(interaction.client.notifications.clear_all)
        await _send_result(interaction, response)

    for command in (
        ticket_status,
        ticket_priority,
        ticket_reply,
        ticket_stats,
        notifications_unread,
        notification_read,
        notifications_read_all,
        notification_delete,
        notifications_clear,
    ):
        command.error(command_error)
