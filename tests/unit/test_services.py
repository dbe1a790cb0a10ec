from typing import Any, List

import pytest

from venue_admin.models import ActionRequest, ActionType, ApiResponse, ErrorKind, ListQuery
from venue_admin.resources import BANNERS, PROMOTIONS
from venue_admin.services import (
    AuthService,
    ContentService,
    NotificationService,
    ProfileService,
    ResourceService,
    SupportService,
    UserService,
    validate_password_change,
)


class _StubClient:
    def __init__(self, *responses: ApiResponse) -> None:
        self.responses: List[ApiResponse] = list(responses)
        self.calls: List[tuple] = []

    def _next(self) -> ApiResponse:
        if not self.responses:
            raise AssertionError("Unexpected API call")
        return self.responses.pop(0)

    def request(self, endpoint, method="GET", body=None, query=None, files=None, form=None):
        self.calls.append(("request", endpoint, method, body, query))
        return self._next()

    def get(self, endpoint, query=None, authorize=True):
        self.calls.append(("get", endpoint, query))
        return self._next()

    def post(self, endpoint, body=None, query=None, authorize=True):
        self.calls.append(("post", endpoint, body))
        return self._next()

    def put(self, endpoint, body=None):
        self.calls.append(("put", endpoint, body))
        return self._next()

    def patch(self, endpoint, body=None):
        self.calls.append(("patch", endpoint, body))
        return self._next()

    def delete(self, endpoint, body=None):
        self.calls.append(("delete", endpoint))
        return self._next()

    def upload(self, endpoint, files, form=None, method="POST"):
        self.calls.append(("upload", endpoint, method, dict(files), dict(form or {})))
        return self._next()


def _ok(data: Any = None, message: str = None) -> ApiResponse:
    return ApiResponse.ok(data=data, message=message, status=200)


@pytest.mark.unit
def test_list_decodes_the_resource_envelope() -> None:
    client = _StubClient(_ok({"data": {"banners": [{"id": 7, "approval_status": "pending"}]}}))
    service = ResourceService(client, BANNERS)

    response = service.list(ListQuery(page=2, search="summer", filters={"status": "pending"}))

    assert response.success is True
    assert response.data.items == [{"id": 7, "approval_status": "pending"}]
    assert client.calls[0] == (
        "get",
        "/api/dashboard/admin/banners/all",
        {"page": 2, "page_size": 10, "search": "summer", "status": "pending"},
    )


@pytest.mark.unit
def test_list_shape_mismatch_fails_loudly() -> None:
    client = _StubClient(_ok({"results": [{"id": 7}]}))

    response = ResourceService(client, BANNERS).list()

    assert response.success is False
    assert response.error_kind == ErrorKind.SHAPE


@pytest.mark.unit
def test_pending_only_uses_the_pending_endpoint() -> None:
    client = _StubClient(_ok({"data": []}))

    ResourceService(client, PROMOTIONS).list(pending_only=True)

    assert client.calls[0][1] == "/api/dashboard/admin/promotions/pending/"


@pytest.mark.unit
def test_reject_promotion_sends_reason_body() -> None:
    client = _StubClient(_ok({"message": "Promotion rejected"}, "Promotion rejected"))

    response = ResourceService(client, PROMOTIONS).perform(
        ActionRequest(12, ActionType.REJECT, reason="Low quality image")
    )

    assert response.message == "Promotion rejected"
    assert client.calls == [
        (
            "request",
            "/api/dashboard/admin/promotions/12/reject/",
            "POST",
            {"rejection_reason": "Low quality image"},
            None,
        )
    ]


@pytest.mark.unit
def test_empty_reason_never_reaches_the_network() -> None:
    client = _StubClient()

    response = ResourceService(client, BANNERS).perform(ActionRequest(7, ActionType.REJECT, reason=""))

    assert response.success is False
    assert response.error_kind == ErrorKind.VALIDATION
    assert client.calls == []


@pytest.mark.unit
def test_repeated_approve_sends_the_same_request() -> None:
    client = _StubClient(_ok({}, "Banner approved"), _ok({}, "Banner already approved"))
    service = ResourceService(client, BANNERS)

    first = service.perform(ActionRequest(7, ActionType.APPROVE))
    second = service.perform(ActionRequest(7, ActionType.APPROVE))

    assert client.calls[0] == client.calls[1]
    assert first.message == "Banner approved"
    assert second.message == "Banner already approved"


@pytest.mark.unit
def test_unsupported_action_is_a_validation_error() -> None:
    client = _StubClient()

    response = ResourceService(client, BANNERS).perform(ActionRequest(7, ActionType.BLOCK, reason="x"))

    assert response.error_kind == ErrorKind.VALIDATION
    assert client.calls == []


@pytest.mark.unit
def test_login_stores_token_and_user(session_store) -> None:
    client = _StubClient(
        _ok({"data": {"access": "acc", "refresh": "ref", "user": {"email": "ops@example.com"}}})
    )
    auth = AuthService(client, session_store)

    response = auth.login("ops@example.com", "secret", remember_me=True)

    assert response.success is True
    assert session_store.get_token() == "acc"
    assert session_store.get_user() == {"email": "ops@example.com"}
    assert session_store.remember_me() is True
    assert auth.current_user() == {"email": "ops@example.com"}
    assert auth.is_authenticated() is True
    assert auth.logout().success is True
    assert session_store.is_authenticated() is False


@pytest.mark.unit
def test_login_without_access_token_is_a_shape_error(session_store) -> None:
    client = _StubClient(_ok({"data": {"user": {}}}))

    response = AuthService(client, session_store).login("ops@example.com", "secret")

    assert response.error_kind == ErrorKind.SHAPE
    assert session_store.get_token() is None


@pytest.mark.unit
@pytest.mark.parametrize(
    ("old", "new", "new2", "expected"),
    [
        ("", "abcdefgh", "abcdefgh", "All password fields are required"),
        ("old", "abcdefgh", "abcdefgX", "New passwords do not match"),
        ("old", "short", "short", "New password must be at least 8 characters long"),
        ("old", "abcdefgh", "abcdefgh", None),
    ],
)
def test_password_change_validation(old, new, new2, expected) -> None:
    assert validate_password_change(old, new, new2) == expected


@pytest.mark.unit
def test_invalid_password_change_is_not_sent() -> None:
    client = _StubClient()

    response = ProfileService(client).change_password("old", "short", "short")

    assert response.error_kind == ErrorKind.VALIDATION
    assert client.calls == []


@pytest.mark.unit
def test_profile_update_sends_only_filled_fields_as_multipart() -> None:
    client = _StubClient(_ok({"message": "Profile updated"}, "Profile updated"))
    picture = ("me.png", b"png", "image/png")

    ProfileService(client).update_profile(
        {"venue_name": "Blue Bar", "location": "", "capacity": 80, "unknown": "x"},
        {"profile_picture": picture, "passport": picture},
    )

    kind, endpoint, method, files, form = client.calls[0]
    assert (kind, endpoint, method) == ("upload", "/api/hospitality/profile-management/", "PUT")
    assert form == {"venue_name": "Blue Bar", "capacity": 80}
    assert list(files) == ["profile_picture"]


@pytest.mark.unit
def test_empty_profile_update_is_not_sent() -> None:
    client = _StubClient()

    response = ProfileService(client).update_profile(
        {"venue_name": None, "location": ""}, {"passport": ("p.pdf", b"%PDF", "application/pdf")}
    )

    assert response.error_kind == ErrorKind.VALIDATION
    assert response.error == "Nothing to update"
    assert client.calls == []


@pytest.mark.unit
def test_faq_create_applies_defaults() -> None:
    client = _StubClient(_ok({"id": 3, "question": "Q?", "answer": "A."}))

    response = ContentService(client).create_faq({"question": "Q?", "answer": "A."})

    assert client.calls[0] == (
        "post",
        "/api/core/faqs/",
        {"question": "Q?", "answer": "A.", "is_active": True, "order": 0},
    )
    assert response.data["id"] == 3


@pytest.mark.unit
def test_unread_count_accepts_wrapped_and_bare_payloads() -> None:
    client = _StubClient(_ok({"data": {"unread_count": 4}}), _ok({"unread_count": 2}), _ok({}))
    service = NotificationService(client)

    assert service.unread_count().data == 4
    assert service.unread_count().data == 2
    assert service.unread_count().error_kind == ErrorKind.SHAPE


@pytest.mark.unit
def test_ticket_statistics_count_status_and_priority() -> None:
    tickets = [
        {"id": 1, "status": "open", "priority": "high"},
        {"id": 2, "status": "open", "priority": "urgent"},
        {"id": 3, "status": "resolved", "priority": "low"},
    ]
    client = _StubClient(_ok({"results": tickets, "count": 3}))

    stats = SupportService(client).statistics().data

    assert stats["total"] == 3
    assert stats["open"] == 2
    assert stats["resolved"] == 1
    assert stats["high_priority"] == 1
    assert stats["urgent"] == 1


@pytest.mark.unit
def test_ticket_status_must_be_known() -> None:
    client = _StubClient()

    response = SupportService(client).update_status(1, "archived")

    assert response.error_kind == ErrorKind.VALIDATION
    assert client.calls == []


@pytest.mark.unit
def test_block_user_uses_default_reason() -> None:
    client = _StubClient(_ok({}, "User blocked"))

    UserService(client).block(42)

    _, endpoint, method, body, _ = client.calls[0]
    assert endpoint == "/api/dashboard/admin/users/42/action/"
    assert method == "POST"
    assert body == {"action": "block", "reason": "Violation of terms and conditions"}


@pytest.mark.unit
def test_password_reset_confirm_checks_match_before_sending(session_store) -> None:
    client = _StubClient(_ok({}))
    auth = AuthService(client, session_store)

    mismatch = auth.password_reset_confirm("ops@example.com", "123456", "abcdefgh", "abcdefgX")
    confirmed = auth.password_reset_confirm("ops@example.com", "123456", "abcdefgh", "abcdefgh")

    assert mismatch.error_kind == ErrorKind.VALIDATION
    assert confirmed.message == "Password reset successfully"
    assert client.calls == [
        (
            "post",
            "/api/accounts/password-reset/confirm/",
            {
                "email": "ops@example.com",
                "otp": "123456",
                "new_password": "abcdefgh",
                "new_password2": "abcdefgh",
            },
        )
    ]



@pytest.mark.unit
def test_account_recovery_calls_go_out_without_the_console_token(
    client, http_session, session_store, make_response
) -> None:
    session_store.set_token("live-token")
    http_session.enqueue(
        make_response(200, {"message": "Email verified"}),
        make_response(200, {}),
    )
    auth = AuthService(client, session_store)

    verified = auth.verify_email("ops@example.com", "123456")
    resent = auth.resend_otp("ops@example.com")

    assert verified.message == "Email verified"
    assert resent.message == "OTP sent successfully"
    assert [call["url"] for call in http_session.calls] == [
        "https://api.example.com/api/accounts/verify-email/",
        "https://api.example.com/api/accounts/resend-otp/",
    ]
    assert all("Authorization" not in call["headers"] for call in http_session.calls)
    assert session_store.get_token() == "live-token"


@pytest.mark.unit
def test_failed_login_keeps_the_live_session(
    client, http_session, session_store, expired_calls, make_response
) -> None:
    session_store.set_token("live-token")
    session_store.set_user({"email": "lead@example.com"})
    http_session.enqueue(make_response(401, {"detail": "Invalid credentials"}))

    response = AuthService(client, session_store).login("ops@example.com", "wrong-password")

    assert response.success is False
    assert response.error_kind == ErrorKind.AUTH_FAILED
    assert response.error == "Invalid credentials"
    assert "Authorization" not in http_session.calls[0]["headers"]
    assert session_store.get_token() == "live-token"
    assert session_store.get_user() == {"email": "lead@example.com"}
    assert expired_calls == []


@pytest.mark.unit
def test_anonymous_401_without_message_is_a_plain_auth_failure(
    client, http_session, session_store, expired_calls, make_response
) -> None:
    session_store.set_token("live-token")
    http_session.enqueue(make_response(401, content_type="text/html", text="<html>401</html>"))

    response = client.post("/api/accounts/login/", body={}, authorize=False)

    assert response.error_kind == ErrorKind.AUTH_FAILED
    assert session_store.get_token() == "live-token"
    assert expired_calls == []
