import logging

import pytest

from venue_admin import logging_setup


def _config(monkeypatch, values):
    monkeypatch.setattr(
        logging_setup, "get_config_value", lambda key, default=None: values.get(key, default)
    )


@pytest.mark.unit
def test_log_directory_is_created(monkeypatch, tmp_path) -> None:
    target = tmp_path / "logs" / "console.log"
    _config(monkeypatch, {"bot_settings.log_file_name": str(target)})

    assert logging_setup.resolve_log_path() == str(target)
    assert (tmp_path / "logs").is_dir()


@pytest.mark.unit
@pytest.mark.parametrize("configured", ["", "   ", None, 42])
def test_unusable_log_name_uses_the_default(monkeypatch, configured) -> None:
    _config(monkeypatch, {"bot_settings.log_file_name": configured})

    assert logging_setup.resolve_log_path() == logging_setup.DEFAULT_LOG_FILE


@pytest.mark.unit
def test_unopenable_log_file_disables_file_logging(tmp_path) -> None:
    assert logging_setup._file_handler(str(tmp_path), logging.Formatter()) is None


@pytest.mark.unit
@pytest.mark.parametrize(
    ("values", "expected"),
    [
        ({"bot_settings.debug_mode": True, "bot_settings.log_level": "ERROR"}, logging.DEBUG),
        ({"bot_settings.log_level": "warning"}, logging.WARNING),
        ({"bot_settings.log_level": "LOUD"}, logging.INFO),
    ],
)
def test_log_level_resolution(monkeypatch, values, expected) -> None:
    _config(monkeypatch, values)

    assert logging_setup._resolve_log_level() == expected
