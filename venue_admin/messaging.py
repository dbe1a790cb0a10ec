"""Handles loading and formatting of user-facing messages and embeds from templates."""

import json
import logging
import os
from typing import Any, Dict, Iterable, Optional, Tuple

import discord

from venue_admin.config import get_config_value
from venue_admin.models import ApiResponse, ErrorKind

logger = logging.getLogger(__name__)

MESSAGE_TEMPLATES: Dict[str, Any] = {}

# Discord embed limits
FIELD_VALUE_LIMIT = 1024
DESCRIPTION_LIMIT = 4096
MAX_FIELDS = 25


def load_message_templates(path: Optional[str] = None) -> None:
    """
    Loads message templates from the JSON file named in message_settings.
    Called once at import; tests may call it again with an explicit path.
    """
    global MESSAGE_TEMPLATES
    templates_file_path = path or get_config_value(
        "message_settings.templates_file", "message_templates.json"
    )

    possible_paths = [
        templates_file_path,
        os.path.join(os.path.dirname(__file__), "..", templates_file_path),
    ]
    loaded_path = None
    for path_option in possible_paths:
        abs_path = os.path.abspath(path_option)
        if os.path.exists(abs_path):
            loaded_path = abs_path
            break

    if not loaded_path:
        logger.error(
            f"Message templates file could not be found (tried {possible_paths}). Messaging system will be impaired."
        )
        MESSAGE_TEMPLATES = {}
        return

    try:
        with open(loaded_path, "r", encoding="utf-8") as f:
            MESSAGE_TEMPLATES = json.load(f)
        logger.info(f"Successfully loaded message templates from: {loaded_path}")
    except json.JSONDecodeError as e:
        logger.error(
            f"Error decoding JSON from message templates file {loaded_path}: {e}. Using empty templates."
        )
        MESSAGE_TEMPLATES = {}
    except OSError as e:
        logger.error(f"Could not read message templates file {loaded_path}: {e}")
        MESSAGE_TEMPLATES = {}


def get_bot_display_name() -> str:
    return get_config_value(
        "message_settings.bot_display_name_in_messages",
        get_config_value("bot_settings.bot_name", "Bot"),
    )


def get_message(key: str, default: Optional[str] = None, **kwargs: Any) -> str:
    """
    Retrieves a message template by its dot-separated key and formats it.

    Example: get_message("session.login_success", email="ops@example.com")
    """
    value: Any = MESSAGE_TEMPLATES
    try:
        for part in key.split("."):
            value = value[part]
    except (KeyError, TypeError):
        logger.warning(f"Message template key '{key}' not found.")
        return default if default is not None else f"<Missing Template: {key}>"

    if not isinstance(value, str):
        logger.warning(f"Template value for key '{key}' is not a string: {type(value)}")
        return default if default is not None else str(value)

    try:
        return value.format(**kwargs)
    except (KeyError, IndexError, ValueError) as e:
        logger.error(f"Error formatting message for key '{key}' with args {kwargs}: {e}")
        return default if default is not None else f"<Error Formatting Template: {key}>"


def get_embed_color(color_type: str) -> discord.Color:
    """Hex colour from message_settings.embed_colors, or the default colour."""
    hex_color_str = get_config_value(f"message_settings.embed_colors.{color_type}")
    if isinstance(hex_color_str, str):
        try:
            return discord.Color(int(hex_color_str, 16))
        except ValueError:
            logger.warning(
                f"Invalid hex color format for '{color_type}': '{hex_color_str}'. Using default color."
            )
    return discord.Color.default()


def truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 1] + "…"


def create_embed(
    title_key: Optional[str] = None,
    description_key: Optional[str] = None,
    color_type: str = "info",
    title_kwargs: Optional[Dict[str, Any]] = None,
    description_kwargs: Optional[Dict[str, Any]] = None,
    footer_text: Optional[str] = None,
    title: Optional[str] = None,
    description: Optional[str] = None,
    **embed_constructor_kwargs: Any,
) -> discord.Embed:
    """
    Creates a discord.Embed using message templates for title and description.

    Literal `title`/`description` are used when no key is given. The footer
    defaults to message_settings.embed_footer_text.
    """
    if title_key:
        title = get_message(title_key, **(title_kwargs or {}))
    if description_key:
        description = get_message(description_key, **(description_kwargs or {}))

    embed = discord.Embed(
        title=truncate(title, 256) if title else None,
        description=truncate(description, DESCRIPTION_LIMIT) if description else None,
        color=get_embed_color(color_type),
        **embed_constructor_kwargs,
    )

    bot_name = get_bot_display_name()
    if footer_text is None:
        footer_format = get_config_value("message_settings.embed_footer_text")
        if footer_format:
            try:
                footer_text = footer_format.format(bot_name=bot_name)
            except (KeyError, IndexError):
                footer_text = footer_format
    if footer_text:
        embed.set_footer(text=footer_text)
    return embed


ERROR_TITLE_KEYS = {
    ErrorKind.NETWORK: "errors.network_title",
    ErrorKind.AUTH_FAILED: "errors.auth_failed_title",
    ErrorKind.NOT_FOUND: "errors.not_found_title",
    ErrorKind.UNEXPECTED_HTML: "errors.unexpected_html_title",
    ErrorKind.VALIDATION: "errors.validation_title",
    ErrorKind.SHAPE: "errors.shape_title",
}


def response_embed(response: ApiResponse, success_title_key: str = "general.success_title") -> discord.Embed:
    """Success or error embed for a service envelope; the server message is shown verbatim."""
    if response.success:
        return create_embed(
            title_key=success_title_key,
            description=response.message or get_message("general.done"),
            color_type="success",
        )
    title_key = ERROR_TITLE_KEYS.get(response.error_kind, "errors.api_title")
    return create_embed(
        title_key=title_key,
        description=response.error or get_message("errors.generic_command_error"),
        color_type="error",
    )


def record_embed(
    title: str,
    fields: Iterable[Tuple[str, str]],
    color_type: str = "info",
    description: Optional[str] = None,
) -> discord.Embed:
    """Embed listing `(label, value)` pairs; long text fields are not inlined."""
    embed = create_embed(title=title, description=description, color_type=color_type)
    for index, (name, value) in enumerate(fields):
        if index >= MAX_FIELDS:
            break
        value = value or "\u200b"
        embed.add_field(
            name=name,
            value=truncate(value, FIELD_VALUE_LIMIT),
            inline=len(value) <= 40,
        )
    return embed


load_message_templates()
