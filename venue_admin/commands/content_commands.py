"""Site content commands: settings pages, FAQs and staff designations."""

import asyncio
import logging
from typing import Callable, Optional, Tuple

import discord

from venue_admin.commands.auth import command_error, is_authorized, requires_session
from venue_admin.messaging import get_message, record_embed, response_embed, truncate
from venue_admin.models import ActionType, ApiResponse, ErrorKind
from venue_admin.projections import format_or_default
from venue_admin.resources import FAQS
from venue_admin.views import log_mutation

logger = logging.getLogger(__name__)


class FaqModal(discord.ui.Modal):
    """Create a FAQ, or edit one when `faq` is given."""

    def __init__(self, faq: Optional[dict] = None):
        super().__init__(title=get_message("content.faq_modal_title"))
        self.faq = faq or {}
        self.question = discord.ui.TextInput(
            label="Question", default=self.faq.get("question"), max_length=500
        )
        self.answer = discord.ui.TextInput(
            label="Answer",
            style=discord.TextStyle.paragraph,
            default=self.faq.get("answer"),
            max_length=4000,
        )
        self.order = discord.ui.TextInput(
            label="Order", default=str(self.faq.get("order") or 0), required=False, max_length=5
        )
        for item in (self.question, self.answer, self.order):
            self.add_item(item)

    async def on_submit(self, interaction: discord.Interaction):
        await interaction.response.defer(ephemeral=True, thinking=True)
        try:
            order = int(self.order.value or 0)
        except ValueError:
            order = 0
        payload = {
            "question": self.question.value,
            "answer": self.answer.value,
            "order": order,
            "is_active": self.faq.get("is_active", True),
        }
        content = interaction.client.content
        if self.faq.get("id") is not None:
            response = await asyncio.to_thread(content.update_faq, self.faq["id"], payload)
        else:
            response = await asyncio.to_thread(content.create_faq, payload)
        await interaction.followup.send(embed=response_embed(response), ephemeral=True)


class SettingModal(discord.ui.Modal):
    def __init__(self, setting_type: str, setting: Optional[dict] = None):
        super().__init__(title=get_message("content.setting_modal_title", setting_type=setting_type))
        self.setting_type = setting_type
        self.exists = setting is not None
        setting = setting or {}
        self.title_input = discord.ui.TextInput(
            label="Title", default=setting.get("title"), required=False, max_length=200
        )
        self.content_input = discord.ui.TextInput(
            label="Content",
            style=discord.TextStyle.paragraph,
            default=truncate(setting.get("content") or "", 4000) or None,
            max_length=4000,
        )
        self.add_item(self.title_input)
        self.add_item(self.content_input)

    async def on_submit(self, interaction: discord.Interaction):
        await interaction.response.defer(ephemeral=True, thinking=True)
        payload = {
            "setting_type": self.setting_type,
            "title": self.title_input.value,
            "content": self.content_input.value,
        }
        content = interaction.client.content
        if self.exists:
            response = await asyncio.to_thread(content.update_setting, self.setting_type, payload)
        else:
            response = await asyncio.to_thread(content.create_setting, payload)
        await interaction.followup.send(embed=response_embed(response), ephemeral=True)


def setting_lookup(response: ApiResponse) -> Tuple[bool, Optional[dict]]:
    """(proceed, setting) for a settings-page lookup; only a 404 means "create new"."""
    if response.success:
        return True, response.data
    if response.error_kind == ErrorKind.NOT_FOUND:
        return True, None
    return False, None


class OpenModalView(discord.ui.View):
    """Follow-up with one "Edit" button that opens the prepared modal."""

    def __init__(self, author_id: int, make_modal: Callable[[], discord.ui.Modal], timeout: float = 300):
        super().__init__(timeout=timeout)
        self.author_id = author_id
        self.make_modal = make_modal

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        if interaction.user.id != self.author_id:
            await interaction.response.send_message(get_message("lists.not_your_view"), ephemeral=True)
            return False
        return True

    @discord.ui.button(label="Edit", style=discord.ButtonStyle.primary)
    async def edit(self, interaction: discord.Interaction, button: discord.ui.Button):
        self.stop()
        await interaction.response.send_modal(self.make_modal())


def setup_commands(bot):
    """Register content commands with the bot."""

    @bot.tree.command(name="settings", description="List the site settings pages.")
    @is_authorized()
    @requires_session()
    async def settings_list(interaction: discord.Interaction):
        await interaction.response.defer(ephemeral=True, thinking=True)
        response = await asyncio.to_thread(interaction.client.content.list_settings)
        if not response.success:
            await interaction.followup.send(embed=response_embed(response), ephemeral=True)
            return
        fields = [
            (
                format_or_default(item.get("setting_type")),
                truncate(format_or_default(item.get("title")), 100),
            )
            for item in response.data.items
        ]
        await interaction.followup.send(
            embed=record_embed(get_message("content.settings_title"), fields), ephemeral=True
        )

    @bot.tree.command(name="setting-edit", description="Create or edit a settings page (privacy, terms...).")
    @is_authorized()
    @requires_session()
    async def setting_edit(interaction: discord.Interaction, setting_type: str):
        setting_type = setting_type.strip()
        await interaction.response.defer(ephemeral=True, thinking=True)
        response = await asyncio.to_thread(interaction.client.content.get_setting, setting_type)
        proceed, setting = setting_lookup(response)
        if not proceed:
            await interaction.followup.send(embed=response_embed(response), ephemeral=True)
            return
        message_key = "content.setting_edit_ready" if setting is not None else "content.setting_create_ready"
        await interaction.followup.send(
            get_message(message_key, setting_type=setting_type),
            view=OpenModalView(interaction.user.id, lambda: SettingModal(setting_type, setting)),
            ephemeral=True,
        )

    @bot.tree.command(name="setting-delete", description="Delete a settings page.")
    @is_authorized()
    @requires_session()
    async def setting_delete(interaction: discord.Interaction, setting_type: str):
        await interaction.response.defer(ephemeral=True, thinking=True)
        response = await asyncio.to_thread(interaction.client.content.delete_setting, setting_type.strip())
        await interaction.followup.send(embed=response_embed(response), ephemeral=True)

    @bot.tree.command(name="faq-add", description="Add a FAQ entry.")
    @is_authorized()
    @requires_session()
    async def faq_add(interaction: discord.Interaction):
        await interaction.response.send_modal(FaqModal())

    @bot.tree.command(name="faq-edit", description="Edit a FAQ entry.")
    @is_authorized()
    @requires_session()
    async def faq_edit(interaction: discord.Interaction, faq_id: str):
        await interaction.response.defer(ephemeral=True, thinking=True)
        response = await asyncio.to_thread(interaction.client.content.get_faq, faq_id.strip())
        if not response.success:
            await interaction.followup.send(embed=response_embed(response), ephemeral=True)
            return
        faq = response.data
        await interaction.followup.send(
            get_message("content.faq_edit_ready", faq_id=faq.get("id", faq_id.strip())),
            view=OpenModalView(interaction.user.id, lambda: FaqModal(faq)),
            ephemeral=True,
        )

    @bot.tree.command(name="faq-delete", description="Delete a FAQ entry.")
    @is_authorized()
    @requires_session()
    async def faq_delete(interaction: discord.Interaction, faq_id: str):
        await interaction.response.defer(ephemeral=True, thinking=True)
        response = await asyncio.to_thread(interaction.client.content.delete_faq, faq_id.strip())
        await interaction.followup.send(embed=response_embed(response), ephemeral=True)
        if response.success:
            await log_mutation(interaction, FAQS, ActionType.DELETE, faq_id.strip(), None)

    @bot.tree.command(name="designations", description="List staff designations.")
    @is_authorized()
    @requires_session()
    async def designations(interaction: discord.Interaction):
        await interaction.response.defer(ephemeral=True, thinking=True)
        response = await asyncio.to_thread(interaction.client.users.list_designations)
        if not response.success:
            await interaction.followup.send(embed=response_embed(response), ephemeral=True)
            return
        fields = [
            (f"#{item.get('id')}", format_or_default(item.get("title")))
            for item in response.data.items
        ]
        await interaction.followup.send(
            embed=record_embed(get_message("content.designations_title"), fields), ephemeral=True
        )

    @bot.tree.command(name="designation-add", description="Add a staff designation.")
    @is_authorized()
    @requires_session()
    async def designation_add(interaction: discord.Interaction, title: str):
        await interaction.response.defer(ephemeral=True, thinking=True)
        response = await asyncio.to_thread(interaction.client.users.create_designation, title)
        await interaction.followup.send(embed=response_embed(response), ephemeral=True)

    @bot.tree.command(name="designation-rename", description="Rename a staff designation.")
    @is_authorized()
    @requires_session()
    async def designation_rename(interaction: discord.Interaction, designation_id: str, title: str):
        await interaction.response.defer(ephemeral=True, thinking=True)
        response = await asyncio.to_thread(
            interaction.client.users.update_designation, designation_id.strip(), title
        )
        await interaction.followup.send(embed=response_embed(response), ephemeral=True)

    @bot.tree.command(name="designation-delete", description="Delete a staff designation.")
    @is_authorized()
    @requires_session()
    async def designation_delete(interaction: discord.Interaction, designation_id: str):
        await interaction.response.defer(ephemeral=True, thinking=True)
        response = await asyncio.to_thread(
            interaction.client.users.delete_designation, designation_id.strip()
        )
        await interaction.followup.send(embed=response_embed(response), ephemeral=True)

    for command in (
        settings_list,
        setting_edit,
        setting_delete,
        faq_add,
        faq_edit,
        faq_delete,
        designations,
        designation_add,
        designation_rename,
        designation_delete,
    ):
        command.error(command_error)
