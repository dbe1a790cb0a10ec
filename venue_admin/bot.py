"""
Discord console for the venue marketplace admin backend.

Key components:
- VenueAdminBot: discord.Client holding the API client, session store,
  database and the per-resource services
- register_event_handlers: on_ready logging
- Background task: polls the unread notification count and announces new
  notifications in the admin log channel
"""

import asyncio
import datetime
import logging
from typing import Dict, Optional

import discord
from discord import app_commands
from discord.ext import tasks

from venue_admin.api_client import AdminApiClient
from venue_admin.config import get_config_value
from venue_admin.database import Database
from venue_admin.list_controller import DegradedCache, ListController
from venue_admin.messaging import create_embed, get_message
from venue_admin.models import AdminAction
from venue_admin.resources import RESOURCES, ResourceSpec
from venue_admin.services import (
    AuthService,
    ContentService,
    NotificationService,
    ProfileService,
    ResourceService,
    SupportService,
    UserService,
    WithdrawalService,
)
from venue_admin.session_store import SessionStore


def _parse_channel_id(value, logger: logging.Logger, setting: str) -> int:
    if not value:
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid format for {setting}: '{value}'. Feature disabled.")
        return 0


class VenueAdminBot(discord.Client):
    """
    Staff console bot.

    Attributes:
        db: sqlite storage for the session record and degraded caches
        session_store: token/user store injected into the API client
        api_client: AdminApiClient bound to the configured backend
        services: ResourceService per resource name, plus the task services
        tree: Command tree for slash commands
    """

    def __init__(self, api_base_url: str):
        self.logger = logging.getLogger(self.__class__.__name__)
        try:
            intents = discord.Intents.default()
            super().__init__(intents=intents)

            self.logger.info("Initializing Database...")
            self.db = Database(get_config_value("bot_settings.db_file_name", "venue_admin.db"))
            self.session_store = SessionStore(
                self.db,
                cookie_name=get_config_value("session.cookie_name", "adminToken"),
                remember_me_days=get_config_value("session.remember_me_days", 30),
                default_days=get_config_value("session.default_days", 1),
            )

            self.logger.info("Initializing admin API client...")
            self.api_client = AdminApiClient(
                api_base_url,
                self.session_store,
                on_session_expired=self.on_session_expired,
                timeout=get_config_value("api.timeout_seconds", 30),
            )
            self.auth = AuthService(self.api_client, self.session_store)
            self.profile = ProfileService(self.api_client)
            self.content = ContentService(self.api_client)
            self.notifications = NotificationService(self.api_client)
            self.support = SupportService(self.api_client)
            self.users = UserService(self.api_client)
            self.withdrawals = WithdrawalService(self.api_client)
            self.services: Dict[str, ResourceService] = {
                name: ResourceService(self.api_client, spec) for name, spec in RESOURCES.items()
            }
            self.services.update(
                {
                    "notifications": self.notifications,
                    "tickets": self.support,
                    "users": self.users,
                    "withdrawals": self.withdrawals,
                }
            )
            self.degraded_caches: Dict[str, DegradedCache] = {}
            self._last_unread_count: Optional[int] = None
            self._event_loop: Optional[asyncio.AbstractEventLoop] = None

            self.tree = app_commands.CommandTree(self)
            self.admin_log_channel_id = _parse_channel_id(
                get_config_value("discord.admin_log_channel_id"),
                self.logger,
                "discord.admin_log_channel_id",
            )
            if self.admin_log_channel_id == 0:
                self.logger.warning(
                    "admin_log_channel_id is not set. Admin actions and session notices will not be posted to Discord."
                )
            self.logger.info("VenueAdminBot initialized successfully.")
        except Exception as e:
            init_logger = getattr(self, "logger", logging.getLogger())
            init_logger.critical(f"Failed to initialize VenueAdminBot: {str(e)}", exc_info=True)
            raise

    def cache_for(self, spec: ResourceSpec) -> Optional[DegradedCache]:
        """Only resources flagged for degraded mode get a cache."""
        if not spec.persist_degraded_cache:
            return None
        if spec.name not in self.degraded_caches:
            self.degraded_caches[spec.name] = DegradedCache(spec.name, self.db)
        return self.degraded_caches[spec.name]

    def create_controller(self, resource_name: str, pending_only: bool = False) -> ListController:
        spec = RESOURCES[resource_name]
        return ListController(
            spec,
            self.services[resource_name],
            page_size=get_config_value("list_settings.page_size", 10),
            debounce_seconds=get_config_value("list_settings.search_debounce_ms", 300) / 1000,
            cache=self.cache_for(spec),
            pending_only=pending_only,
        )

    def is_command_channel(self, channel: discord.abc.GuildChannel) -> bool:
        """True if the channel, its category or a thread's parent is configured for commands."""
        configured = [str(c) for c in get_config_value("discord.command_channel_ids", [])]
        if not configured:
            # no restriction configured
            return True
        candidates = [
            getattr(channel, "id", None),
            getattr(channel, "category_id", None),
        ]
        if isinstance(channel, discord.Thread):
            candidates.append(channel.parent_id)
            parent = channel.parent
            if parent is not None:
                candidates.append(getattr(parent, "category_id", None))
        return any(str(c) in configured for c in candidates if c)

    async def setup_hook(self):
        """Sync slash commands to the configured guild and start background tasks."""
        self._event_loop = asyncio.get_running_loop()
        try:
            guild_id_str = get_config_value("discord.guild_id")
            try:
                guild = discord.Object(id=int(guild_id_str))
            except (TypeError, ValueError):
                self.logger.error(
                    f"Invalid or missing discord.guild_id: '{guild_id_str}'. Command sync will be skipped."
                )
                guild = None

            if guild is not None:
                self.tree.copy_global_to(guild=guild)
                await self.tree.sync(guild=guild)
                self.logger.info(f"Successfully synced commands to guild ID: {guild.id}")

            interval = get_config_value("notification_settings.poll_interval_minutes", 5)
            if interval > 0:
                self.poll_notifications.change_interval(minutes=interval)
                self.poll_notifications.start()
                self.logger.info(f"Notification polling started (every {interval} min).")
        except Exception as e:
            self.logger.error(f"Error during setup_hook: {str(e)}", exc_info=True)
            raise

    def on_session_expired(self) -> None:
        """Called by the API client, usually from a worker thread."""
        self._last_unread_count = None
        loop = self._event_loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(
            lambda: asyncio.ensure_future(self.announce_session_expired())
        )

    async def announce_session_expired(self) -> None:
        embed = create_embed(
            title_key="session.expired_title",
            description_key="session.expired_description",
            color_type="warning",
        )
        await self.send_to_admin_log(embed)

    async def send_to_admin_log(self, embed: discord.Embed) -> bool:
        if self.admin_log_channel_id == 0:
            return False
        try:
            await self.wait_until_ready()
            channel = self.get_channel(self.admin_log_channel_id) or await self.fetch_channel(
                self.admin_log_channel_id
            )
            await channel.send(embed=embed)
            return True
        except discord.errors.Forbidden:
            self.logger.error(
                f"Cannot post to admin log channel {self.admin_log_channel_id}: missing permissions."
            )
        except discord.errors.HTTPException as e:
            self.logger.error(f"Failed to post to admin log channel {self.admin_log_channel_id}: {e}")
        return False

    async def log_admin_action(self, action: AdminAction) -> None:
        """Log a mutation to the application log and the admin log channel."""
        self.logger.info(
            f"Admin action: {action.action_type} {action.resource} #{action.target_id} by {action.admin_username}"
        )
        embed = create_embed(
            title_key="admin_log.embed_title",
            color_type="info",
            timestamp=datetime.datetime.fromtimestamp(action.performed_at, tz=datetime.timezone.utc),
        )
        embed.add_field(
            name=get_message("admin_log.field_action_name"),
            value=get_message(
                "admin_log.field_action_value",
                action_type=action.action_type,
                resource=action.resource,
                target_id=action.target_id,
            ),
            inline=True,
        )
        embed.add_field(
            name=get_message("admin_log.field_performed_by_name"),
            value=get_message(
                "admin_log.field_performed_by_value",
                admin_username=action.admin_username,
                admin_id=action.admin_id,
            ),
            inline=True,
        )
        embed.add_field(
            name=get_message("admin_log.field_details_name"),
            value=action.details or "N/A",
            inline=False,
        )
        await self.send_to_admin_log(embed)

    @tasks.loop(minutes=5)
    async def poll_notifications(self):
        await self.wait_until_ready()
        if not self.session_store.is_authenticated():
            return
        response = await asyncio.to_thread(self.notifications.unread_count)
        if not response.success:
            self.logger.warning(f"Unread notification poll failed: {response.error}")
            return

        count = response.data
        previous = self._last_unread_count
        self._last_unread_count = count
        if previous is not None and count > previous:
            embed = create_embed(
                title_key="notifications.new_title",
                description_key="notifications.new_description",
                description_kwargs={"new": count - previous, "unread": count},
                color_type="info",
            )
            await self.send_to_admin_log(embed)

    @poll_notifications.error
    async def poll_notifications_error(self, error: BaseException):
        self.logger.error(f"Notification poll task crashed: {error}", exc_info=error)


def register_event_handlers(bot: VenueAdminBot):
    """Register event handlers for the bot instance."""

    @bot.event
    async def on_ready():
        bot.logger.info("------ BOT READY ------")
        bot.logger.info(f"Logged in as: {bot.user} (ID: {bot.user.id})")
        bot.logger.info(f"Connected to {len(bot.guilds)} guild(s).")
        bot.logger.info(f"Admin session active: {bot.session_store.is_authenticated()}")
        bot.logger.info("-----------------------")
