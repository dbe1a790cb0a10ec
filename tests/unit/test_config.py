import copy

import pytest

from venue_admin import config


def _valid_config():
    cfg = copy.deepcopy(config.DEFAULT_CONFIG_STRUCTURE)
    cfg["discord"].update(
        {"token": "discord-token", "guild_id": "123456789", "command_authorized_roles": ["Staff"]}
    )
    cfg["api"]["base_url"] = "https://api.example.com"
    return cfg


@pytest.fixture
def isolated_config(monkeypatch):
    """Any reload or replacement of APP_CONFIG is undone after the test."""
    monkeypatch.setattr(config, "APP_CONFIG", copy.deepcopy(config.APP_CONFIG))
    return monkeypatch


@pytest.mark.unit
def test_yaml_values_override_defaults(isolated_config, tmp_path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("api:\n  base_url: https://staging.example.com\nlist_settings:\n  page_size: 25\n")

    loaded = config.load_app_config(str(path))

    assert loaded["api"]["base_url"] == "https://staging.example.com"
    assert loaded["list_settings"]["page_size"] == 25
    assert loaded["list_settings"]["search_debounce_ms"] == 300


@pytest.mark.unit
def test_env_vars_override_yaml_with_types(isolated_config, tmp_path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("api:\n  base_url: https://staging.example.com\n")
    isolated_config.setenv("VENUE_API_BASE_URL", "https://prod.example.com")
    isolated_config.setenv("LIST_SETTINGS_PAGE_SIZE", "50")
    isolated_config.setenv("BOT_SETTINGS_DEBUG_MODE", "yes")
    isolated_config.setenv("DISCORD_COMMAND_CHANNEL_IDS", "111, 222")

    config.load_app_config(str(path))

    assert config.get_config_value("api.base_url") == "https://prod.example.com"
    assert config.get_config_value("list_settings.page_size") == 50
    assert config.get_config_value("bot_settings.debug_mode") is True
    assert config.get_config_value("discord.command_channel_ids") == ["111", "222"]


@pytest.mark.unit
def test_get_config_value_falls_back_to_default(isolated_config) -> None:
    assert config.get_config_value("nonexistent.path", "fallback") == "fallback"


@pytest.mark.unit
def test_valid_config_passes_validation(isolated_config) -> None:
    isolated_config.setattr(config, "APP_CONFIG", _valid_config())

    config.validate_config()


@pytest.mark.unit
@pytest.mark.parametrize(
    ("section", "key", "value"),
    [
        ("api", "base_url", None),
        ("api", "base_url", "ftp://api.example.com"),
        ("discord", "guild_id", "not-a-snowflake"),
        ("discord", "command_authorized_roles", []),
        ("list_settings", "page_size", 0),
        ("api", "timeout_seconds", "30"),
        ("message_settings", "embed_colors", {"error": "red"}),
    ],
)
def test_invalid_config_exits(isolated_config, section, key, value) -> None:
    cfg = _valid_config()
    cfg[section][key] = value
    isolated_config.setattr(config, "APP_CONFIG", cfg)

    with pytest.raises(SystemExit):
        config.validate_config()
