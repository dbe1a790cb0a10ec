"""
Discord UI for the list screens: a paginated list view with an item picker
and one button per action verb, a search modal, and the reason prompt that
gates adverse actions.
"""

import asyncio
import datetime
import logging
from typing import Any, Optional

import discord

from venue_admin.confirmation import ConfirmationFlow, FlowState
from venue_admin.list_controller import ListController
from venue_admin.messaging import (
    create_embed,
    get_message,
    record_embed,
    response_embed,
    truncate,
)
from venue_admin.models import ActionType, AdminAction, ApiResponse, Record
from venue_admin.projections import project, status_label
from venue_admin.resources import ResourceSpec

logger = logging.getLogger(__name__)

# Actions that open the reason prompt before anything is sent
PROMPTED_ACTIONS = frozenset({ActionType.REJECT, ActionType.BLOCK, ActionType.DELETE})

ACTION_STYLES = {
    ActionType.APPROVE: discord.ButtonStyle.success,
    ActionType.VERIFY: discord.ButtonStyle.success,
    ActionType.UNBLOCK: discord.ButtonStyle.success,
    ActionType.RESOLVE: discord.ButtonStyle.success,
    ActionType.REJECT: discord.ButtonStyle.danger,
    ActionType.BLOCK: discord.ButtonStyle.danger,
    ActionType.DELETE: discord.ButtonStyle.danger,
}


def item_title(spec: ResourceSpec, item: Record) -> str:
    for key in (spec.title_field, "title", "name", "full_name", "email"):
        value = item.get(key)
        if value:
            return str(value)
    return f"{spec.label} {item.get('id')}"


def item_status(spec: ResourceSpec, item: Record) -> str:
    if spec.status_field:
        return status_label(item.get(spec.status_field))
    if "is_blocked" in item:
        return "Blocked" if item.get("is_blocked") else "Active"
    if "is_read" in item:
        return "Read" if item.get("is_read") else "Unread"
    return ""


def format_row(spec: ResourceSpec, item: Record) -> str:
    status = item_status(spec, item)
    row = f"`#{item.get('id')}` **{truncate(item_title(spec, item), 80)}**"
    return f"{row} · {status}" if status else row


def build_list_embed(controller: ListController) -> discord.Embed:
    spec = controller.spec
    state = controller.state
    items = controller.visible_items

    if state.error and not state.degraded:
        description = get_message("lists.error", error=state.error)
        color_type = "error"
    elif not items:
        description = get_message("lists.empty", label=spec.label.lower())
        color_type = "info"
    else:
        description = "\n".join(format_row(spec, item) for item in items)
        color_type = "warning" if state.degraded else "info"

    footer = get_message(
        "lists.footer",
        page=state.query.page,
        total_pages=state.total_pages,
        total=state.total_count,
    )
    if state.degraded:
        footer = f"{footer} · {get_message('lists.degraded_label')}"

    embed = create_embed(
        title_key="lists.title",
        title_kwargs={"label": spec.label},
        description=description,
        color_type=color_type,
        footer_text=footer,
    )
    if state.query.search:
        embed.add_field(name=get_message("lists.search_field"), value=state.query.search, inline=True)
    if state.query.filters:
        filters = ", ".join(f"{k}={v}" for k, v in state.query.filters.items())
        embed.add_field(name=get_message("lists.filters_field"), value=filters, inline=True)
    if controller.pending_only:
        embed.add_field(name=get_message("lists.scope_field"), value=get_message("lists.pending_only"), inline=True)
    return embed


def build_detail_embed(spec: ResourceSpec, record: Record) -> discord.Embed:
    projection = project(spec.name, record)
    fields = [
        (key.replace("_", " ").title(), value)
        for key, value in projection.items()
        if key not in ("id", "image_url")
    ]
    embed = record_embed(
        get_message("lists.detail_title", label=spec.label, id=record.get("id")),
        fields,
    )
    image_url = projection.get("image_url")
    if image_url and image_url.startswith("http"):
        embed.set_image(url=image_url)
    return embed


async def log_mutation(
    interaction: discord.Interaction,
    spec: ResourceSpec,
    action_type: ActionType,
    entity_id: Any,
    details: Optional[str],
) -> None:
    bot = interaction.client
    if not hasattr(bot, "log_admin_action"):
        return
    await bot.log_admin_action(
        AdminAction(
            admin_id=str(interaction.user.id),
            admin_username=str(interaction.user),
            action_type=action_type.value,
            resource=spec.name,
            target_id=str(entity_id),
            details=details,
            performed_at=int(datetime.datetime.now(datetime.timezone.utc).timestamp()),
        )
    )


class SearchModal(discord.ui.Modal):
    def __init__(self, list_view: "ListView"):
        super().__init__(title=get_message("lists.search_modal_title"))
        self.list_view = list_view
        self.term = discord.ui.TextInput(
            label=get_message("lists.search_label"),
            default=list_view.controller.query.search,
            required=False,
            max_length=100,
        )
        self.add_item(self.term)

    async def on_submit(self, interaction: discord.Interaction):
        controller = self.list_view.controller
        controller.set_search(self.term.value)
        # local narrowing first; the debounced fetch edits the message again
        await interaction.response.edit_message(
            embed=build_list_embed(controller), view=self.list_view
        )


class ReasonModal(discord.ui.Modal):
    """Presents an open ConfirmationFlow; submitting drives the flow."""

    def __init__(self, list_view: "ListView", flow: ConfirmationFlow):
        super().__init__(
            title=get_message(
                "confirm.modal_title",
                action=flow.action_type.value.title(),
                label=list_view.controller.spec.label,
            )
        )
        self.list_view = list_view
        self.flow = flow
        self.reason = discord.ui.TextInput(
            label=get_message("confirm.reason_label"),
            style=discord.TextStyle.paragraph,
            default=flow.reason or None,
            required=False,
            max_length=500,
        )
        self.add_item(self.reason)

    async def on_submit(self, interaction: discord.Interaction):
        self.flow.set_reason(self.reason.value)
        await self.list_view.submit_flow(interaction, self.flow)

    async def on_error(self, interaction: discord.Interaction, error: Exception) -> None:
        logger.error(f"Error in reason prompt: {error}", exc_info=True)
        self.flow.cancel()
        if not interaction.response.is_done():
            await interaction.response.send_message(
                get_message("errors.generic_command_error"), ephemeral=True
            )


class RetryPromptView(discord.ui.View):
    """Keeps a failed prompt open: reopen it with the reason kept, or cancel."""

    def __init__(self, list_view: "ListView", flow: ConfirmationFlow):
        super().__init__(timeout=list_view.timeout)
        self.list_view = list_view
        self.flow = flow

    @discord.ui.button(label="Edit reason", style=discord.ButtonStyle.primary)
    async def reopen(self, interaction: discord.Interaction, button: discord.ui.Button):
        if self.flow.state != FlowState.PROMPT_OPEN:
            await interaction.response.send_message(get_message("confirm.no_prompt"), ephemeral=True)
            return
        await interaction.response.send_modal(ReasonModal(self.list_view, self.flow))

    @discord.ui.button(label="Cancel", style=discord.ButtonStyle.secondary)
    async def cancel(self, interaction: discord.Interaction, button: discord.ui.Button):
        self.flow.cancel()
        self.stop()
        await interaction.response.edit_message(content=get_message("confirm.cancelled"), embed=None, view=None)

    async def on_timeout(self) -> None:
        self.flow.cancel()


class ActionButton(discord.ui.Button):
    def __init__(self, action_type: ActionType):
        super().__init__(
            label=action_type.value.title(),
            style=ACTION_STYLES.get(action_type, discord.ButtonStyle.secondary),
            row=2,
        )
        self.action_type = action_type

    async def callback(self, interaction: discord.Interaction):
        view: ListView = self.view
        if view.selected_id is None:
            await interaction.response.send_message(get_message("lists.select_first"), ephemeral=True)
            return
        flow = ConfirmationFlow()
        flow.open(view.selected_id, self.action_type)
        if self.action_type in PROMPTED_ACTIONS:
            await interaction.response.send_modal(ReasonModal(view, flow))
            return
        await view.submit_flow(interaction, flow)


class ItemSelect(discord.ui.Select):
    def __init__(self):
        super().__init__(placeholder=get_message("lists.select_placeholder"), row=1, min_values=1, max_values=1)

    async def callback(self, interaction: discord.Interaction):
        view: ListView = self.view
        view.selected_id = self.values[0]
        view.sync_components()
        await interaction.response.edit_message(view=view)


class ListView(discord.ui.View):
    """
    One open list screen. The controller is closed when the view times out,
    so late responses are dropped instead of editing a dead message.
    """

    def __init__(self, controller: ListController, author_id: int, timeout: float = 600):
        super().__init__(timeout=timeout)
        self.controller = controller
        self.author_id = author_id
        self.message: Optional[discord.InteractionMessage] = None
        self.selected_id: Optional[str] = None
        self.controller.on_change = self.refresh_message

        self.item_select = ItemSelect()
        self.add_item(self.item_select)
        for action_type in controller.spec.actions:
            self.add_item(ActionButton(action_type))
        self.sync_components()

    def sync_components(self) -> None:
        state = self.controller.state
        items = self.controller.visible_items[:25]
        ids = {str(item.get("id")) for item in items}
        if self.selected_id not in ids:
            self.selected_id = None

        if items:
            self.item_select.options = [
                discord.SelectOption(
                    label=truncate(f"#{item.get('id')} {item_title(self.controller.spec, item)}", 100),
                    value=str(item.get("id")),
                    description=item_status(self.controller.spec, item) or None,
                    default=str(item.get("id")) == self.selected_id,
                )
                for item in items
            ]
            self.item_select.disabled = False
        else:
            self.item_select.options = [discord.SelectOption(label="-", value="none")]
            self.item_select.disabled = True

        self.previous_page.disabled = state.loading or state.query.page <= 1
        self.next_page.disabled = state.loading or state.query.page >= state.total_pages
        self.refresh_list.label = "Retry" if state.error and not state.degraded else "Refresh"
        for child in self.children:
            if isinstance(child, ActionButton):
                child.disabled = self.selected_id is None or self.controller.state.degraded
        self.details.disabled = self.selected_id is None

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        if interaction.user.id != self.author_id:
            await interaction.response.send_message(get_message("lists.not_your_view"), ephemeral=True)
            return False
        return True

    async def refresh_message(self) -> None:
        if self.message is None or self.controller.closed:
            return
        self.sync_components()
        try:
            await self.message.edit(embed=build_list_embed(self.controller), view=self)
        except discord.HTTPException as e:
            logger.warning(f"Could not update list message: {e}")

    async def _rerender(self, interaction: discord.Interaction) -> None:
        self.sync_components()
        await interaction.edit_original_response(embed=build_list_embed(self.controller), view=self)

    @discord.ui.button(label="◀ Prev", style=discord.ButtonStyle.secondary, row=0)
    async def previous_page(self, interaction: discord.Interaction, button: discord.ui.Button):
        await interaction.response.defer()
        await self.controller.set_page(self.controller.query.page - 1)
        await self._rerender(interaction)

    @discord.ui.button(label="Next ▶", style=discord.ButtonStyle.secondary, row=0)
    async def next_page(self, interaction: discord.Interaction, button: discord.ui.Button):
        await interaction.response.defer()
        await self.controller.set_page(self.controller.query.page + 1)
        await self._rerender(interaction)

    @discord.ui.button(label="Search", style=discord.ButtonStyle.primary, row=0)
    async def search(self, interaction: discord.Interaction, button: discord.ui.Button):
        await interaction.response.send_modal(SearchModal(self))

    @discord.ui.button(label="Clear", style=discord.ButtonStyle.secondary, row=0)
    async def clear(self, interaction: discord.Interaction, button: discord.ui.Button):
        await interaction.response.defer()
        self.controller.query.search = ""
        await self.controller.clear_filters()
        await self._rerender(interaction)

    @discord.ui.button(label="Refresh", style=discord.ButtonStyle.secondary, row=0)
    async def refresh_list(self, interaction: discord.Interaction, button: discord.ui.Button):
        await interaction.response.defer()
        await self.controller.fetch()
        await self._rerender(interaction)

    @discord.ui.button(label="Details", style=discord.ButtonStyle.primary, row=3)
    async def details(self, interaction: discord.Interaction, button: discord.ui.Button):
        if self.selected_id is None:
            await interaction.response.send_message(get_message("lists.select_first"), ephemeral=True)
            return
        await interaction.response.defer(ephemeral=True, thinking=True)
        response = await asyncio.to_thread(self.controller.service.detail, self.selected_id)
        if not response.success:
            await interaction.followup.send(embed=response_embed(response), ephemeral=True)
            return
        await interaction.followup.send(
            embed=build_detail_embed(self.controller.spec, response.data), ephemeral=True
        )

    async def submit_flow(self, interaction: discord.Interaction, flow: ConfirmationFlow) -> ApiResponse:
        """Run a confirmed action and report back; failures keep the prompt open."""
        await interaction.response.defer(ephemeral=True, thinking=True)
        action_type = flow.action_type
        entity_id = flow.entity_id
        reason = flow.reason.strip() or None

        response = await flow.submit(self.controller)
        if not response.success:
            if flow.state == FlowState.PROMPT_OPEN:
                await interaction.followup.send(
                    embed=response_embed(response), view=RetryPromptView(self, flow), ephemeral=True
                )
            else:
                await interaction.followup.send(embed=response_embed(response), ephemeral=True)
            return response

        await interaction.followup.send(embed=response_embed(response), ephemeral=True)
        await self.refresh_message()
        await log_mutation(interaction, self.controller.spec, action_type, entity_id, reason)
        return response

    async def on_timeout(self) -> None:
        self.controller.close()
        for child in self.children:
            child.disabled = True
        if self.message is not None:
            try:
                await self.message.edit(view=self)
            except discord.HTTPException as e:
                logger.debug(f"Could not disable expired list view: {e}")

    async def on_error(self, interaction: discord.Interaction, error: Exception, item: discord.ui.Item) -> None:
        logger.error(f"Error in list view component {item}: {error}", exc_info=True)
        message = get_message("errors.generic_command_error")
        if not interaction.response.is_done():
            await interaction.response.send_message(message, ephemeral=True)
        else:
            try:
                await interaction.followup.send(message, ephemeral=True)
            except discord.HTTPException:
                logger.error("Failed to send error followup message.")
