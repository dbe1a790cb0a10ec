"""List, detail and action commands shared by every resource family."""

import asyncio
import logging
from typing import Optional

import discord
from discord import app_commands

from venue_admin.commands.auth import command_error, is_authorized, requires_session
from venue_admin.config import get_config_value
from venue_admin.messaging import response_embed
from venue_admin.models import ActionRequest, ActionType
from venue_admin.resources import RESOURCES
from venue_admin.views import ListView, build_detail_embed, build_list_embed, log_mutation

logger = logging.getLogger(__name__)

LIST_RESOURCES = (
    "banners",
    "promotions",
    "registrations",
    "withdrawals",
    "tickets",
    "users",
    "notifications",
    "faqs",
)

RESOURCE_CHOICES = [
    app_commands.Choice(name=RESOURCES[name].label, value=name) for name in LIST_RESOURCES
]
ACTION_CHOICES = [
    app_commands.Choice(name=action.value.title(), value=action.value) for action in ActionType
]


async def open_list(
    interaction: discord.Interaction,
    resource: str,
    pending_only: bool = False,
    status: Optional[str] = None,
    search: Optional[str] = None,
) -> ListView:
    """Fetch the first page and post an interactive list view."""
    await interaction.response.defer(ephemeral=True, thinking=True)
    bot = interaction.client
    controller = bot.create_controller(resource, pending_only=pending_only)
    if status:
        controller.query.filters["status"] = status
    if search:
        controller.query.search = search.strip()
    await controller.fetch()

    view = ListView(
        controller,
        author_id=interaction.user.id,
        timeout=get_config_value("list_settings.view_timeout_seconds", 600),
    )
    view.message = await interaction.followup.send(
        embed=build_list_embed(controller), view=view, ephemeral=True, wait=True
    )
    return view


def setup_commands(bot):
    """Register resource commands with the bot."""

    @bot.tree.command(name="list", description="Browse a resource list with search, paging and actions.")
    @app_commands.describe(
        resource="Which list to open",
        pending_only="Only items awaiting review (banners, promotions, withdrawals)",
        status="Filter by status",
        search="Initial search term",
    )
    @app_commands.choices(resource=RESOURCE_CHOICES)
    @is_authorized()
    @requires_session()
    async def list_command(
        interaction: discord.Interaction,
        resource: app_commands.Choice[str],
        pending_only: bool = False,
        status: Optional[str] = None,
        search: Optional[str] = None,
    ):
        await open_list(interaction, resource.value, pending_only, status, search)

    @bot.tree.command(name="view", description="Show one record in detail.")
    @app_commands.choices(resource=RESOURCE_CHOICES)
    @is_authorized()
    @requires_session()
    async def view_command(
        interaction: discord.Interaction, resource: app_commands.Choice[str], item_id: str
    ):
        await interaction.response.defer(ephemeral=True, thinking=True)
        spec = RESOURCES[resource.value]
        response = await asyncio.to_thread(
            interaction.client.services[spec.name].detail, item_id.strip()
        )
        if not response.success:
            await interaction.followup.send(embed=response_embed(response), ephemeral=True)
            return
        await interaction.followup.send(embed=build_detail_embed(spec, response.data), ephemeral=True)

    @bot.tree.command(name="act", description="Apply an action (approve, reject, block...) to one record.")
    @app_commands.describe(reason="Required for reject and block")
    @app_commands.choices(resource=RESOURCE_CHOICES, action=ACTION_CHOICES)
    @is_authorized()
    @requires_session()
    async def act_command(
        interaction: discord.Interaction,
        resource: app_commands.Choice[str],
        item_id: str,
        action: app_commands.Choice[str],
        reason: Optional[str] = None,
    ):
        await interaction.response.defer(ephemeral=True, thinking=True)
        spec = RESOURCES[resource.value]
        action_type = ActionType(action.value)
        request = ActionRequest(item_id.strip(), action_type, reason=(reason or "").strip() or None)
        response = await asyncio.to_thread(interaction.client.services[spec.name].perform, request)
        await interaction.followup.send(embed=response_embed(response), ephemeral=True)
        if response.success:
            await log_mutation(interaction, spec, action_type, request.entity_id, request.reason)

    for command in (list_command, view_command, act_command):
        command.error(command_error)
