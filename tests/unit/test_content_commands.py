import asyncio

import pytest

from venue_admin.commands.content_commands import OpenModalView, SettingModal, setting_lookup
from venue_admin.models import ApiResponse, ErrorKind


class _StubResponse:
    def __init__(self):
        self.modals = []
        self.messages = []

    async def send_modal(self, modal):
        self.modals.append(modal)

    async def send_message(self, content=None, **kwargs):
        self.messages.append(content)


class _StubUser:
    def __init__(self, user_id):
        self.id = user_id


class _StubInteraction:
    def __init__(self, user_id):
        self.user = _StubUser(user_id)
        self.response = _StubResponse()


@pytest.mark.unit
def test_existing_setting_is_edited() -> None:
    setting = {"setting_type": "privacy", "title": "Privacy", "content": "..."}

    assert setting_lookup(ApiResponse.ok(data=setting, status=200)) == (True, setting)


@pytest.mark.unit
def test_only_not_found_means_create() -> None:
    missing = ApiResponse.fail("Resource not found", ErrorKind.NOT_FOUND, 404)

    assert setting_lookup(missing) == (True, None)


@pytest.mark.unit
@pytest.mark.parametrize(
    "kind",
    [ErrorKind.NETWORK, ErrorKind.AUTH_FAILED, ErrorKind.API, ErrorKind.UNEXPECTED_HTML],
)
def test_other_lookup_failures_stop_the_edit(kind) -> None:
    assert setting_lookup(ApiResponse.fail("boom", kind)) == (False, None)


@pytest.mark.unit
def test_edit_button_opens_the_prepared_modal() -> None:
    async def run():
        view = OpenModalView(7, lambda: SettingModal("privacy", None))
        interaction = _StubInteraction(7)
        allowed = await view.interaction_check(interaction)
        await view.children[0].callback(interaction)
        return view, interaction, allowed

    view, interaction, allowed = asyncio.run(run())

    assert allowed is True
    assert len(interaction.response.modals) == 1
    modal = interaction.response.modals[0]
    assert isinstance(modal, SettingModal)
    assert modal.setting_type == "privacy"
    assert modal.exists is False
    assert view.is_finished() is True


@pytest.mark.unit
def test_edit_button_belongs_to_the_invoker() -> None:
    async def run():
        view = OpenModalView(7, lambda: SettingModal("privacy", {"title": "Privacy"}))
        interaction = _StubInteraction(8)
        return await view.interaction_check(interaction), interaction

    allowed, interaction = asyncio.run(run())

    assert allowed is False
    assert interaction.response.modals == []
    assert len(interaction.response.messages) == 1
