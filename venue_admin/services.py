"""
Service wrappers around the admin API.

Every public function returns an ApiResponse and never raises; decoding of
the server's envelope happens here, once per resource, so callers only ever
see records and ListResults.
"""

import logging
from typing import Any, Dict, Mapping, Optional, Tuple

from venue_admin.api_client import AdminApiClient
from venue_admin.models import (
    ActionRequest,
    ActionType,
    ApiResponse,
    ErrorKind,
    ListQuery,
    Record,
)
from venue_admin.resources import (
    DESIGNATIONS,
    FAQS,
    NOTIFICATIONS,
    SETTINGS,
    TICKETS,
    USERS,
    WITHDRAWALS,
    ResourceSpec,
    ResponseShapeError,
    decode_bare_record,
    decode_data_record,
    validate_action,
)
from venue_admin.session_store import SessionStore


MIN_PASSWORD_LENGTH = 8

DEFAULT_BLOCK_REASON = "Violation of terms and conditions"
DEFAULT_DELETE_REASON = "User requested account deletion"


def _message(response: ApiResponse, default: str) -> str:
    return response.message or default


class ResourceService:
    """List/detail/action/CRUD calls for one resource family."""

    def __init__(self, client: AdminApiClient, spec: ResourceSpec):
        self.client = client
        self.spec = spec
        self.logger = logging.getLogger(f"{self.__class__.__name__}.{spec.name}")

    def _decode(self, response: ApiResponse, decoder, what: str) -> ApiResponse:
        if not response.success:
            return response
        try:
            data = decoder(response.data)
        except ResponseShapeError as e:
            self.logger.error(f"Unexpected {self.spec.name} {what} response shape: {e}")
            return ApiResponse.fail(
                f"Unexpected response from server for {self.spec.name}: {e}",
                ErrorKind.SHAPE,
                response.status,
            )
        return ApiResponse(
            success=True, data=data, message=response.message, status=response.status
        )

    def list(self, query: Optional[ListQuery] = None, pending_only: bool = False) -> ApiResponse:
        """Fetch one page. `data` is a ListResult."""
        query = query or ListQuery()
        path = self.spec.pending_path if pending_only and self.spec.pending_path else self.spec.list_path
        self.logger.debug(f"Listing {self.spec.name} with {query}")
        response = self.client.get(path, query=query.to_params())
        return self._decode(response, self.spec.decode_list, "list")

    def detail(self, entity_id: Any) -> ApiResponse:
        if entity_id in (None, ""):
            return ApiResponse.fail(f"{self.spec.label} ID is required", ErrorKind.VALIDATION)
        response = self.client.get(self.spec.detail_endpoint(entity_id))
        return self._decode(response, self.spec.decode_detail, "detail")

    def perform(self, request: ActionRequest) -> ApiResponse:
        """Send one action verb. The server's message is passed through verbatim."""
        action = self.spec.action(request.action_type)
        if action is None:
            return ApiResponse.fail(
                f"{self.spec.label} does not support '{request.action_type.value}'",
                ErrorKind.VALIDATION,
            )
        problem = validate_action(request)
        if problem:
            return ApiResponse.fail(problem, ErrorKind.VALIDATION)

        self.logger.info(
            f"{request.action_type.value} {self.spec.name} #{request.entity_id}"
        )
        response = self.client.request(
            action.endpoint(request.entity_id),
            action.method,
            body=action.body(request),
            query=action.query(request),
        )
        if response.success and not response.message:
            response.message = (
                f"{self.spec.label} {request.action_type.value} completed successfully"
            )
        return response

    def create(self, payload: Mapping[str, Any]) -> ApiResponse:
        response = self.client.post(self.spec.list_path, body=dict(payload))
        return self._record(response)

    def update(self, entity_id: Any, payload: Mapping[str, Any], partial: bool = False) -> ApiResponse:
        endpoint = self.spec.detail_endpoint(entity_id)
        if partial:
            response = self.client.patch(endpoint, body=dict(payload))
        else:
            response = self.client.put(endpoint, body=dict(payload))
        return self._record(response)

    def remove(self, entity_id: Any) -> ApiResponse:
        response = self.client.delete(self.spec.detail_endpoint(entity_id))
        if response.success and not response.message:
            response.message = f"{self.spec.label} deleted successfully"
        return response

    def _record(self, response: ApiResponse) -> ApiResponse:
        """Create/update answers are `{data: {...}}` or the bare record."""
        if not response.success:
            return response
        payload = response.data
        decoder = (
            decode_data_record
            if isinstance(payload, dict) and isinstance(payload.get("data"), dict)
            else decode_bare_record
        )
        return self._decode(response, decoder, "record")


class WithdrawalService(ResourceService):
    def __init__(self, client: AdminApiClient):
        super().__init__(client, WITHDRAWALS)

    def approve(self, withdrawal_id: Any, notes: str = "", processed_by: str = "") -> ApiResponse:
        return self.perform(
            ActionRequest(
                withdrawal_id,
                ActionType.APPROVE,
                extra={"notes": notes, "processed_by": processed_by},
            )
        )

    def reject(
        self, withdrawal_id: Any, reason: str, notes: str = "", processed_by: str = ""
    ) -> ApiResponse:
        return self.perform(
            ActionRequest(
                withdrawal_id,
                ActionType.REJECT,
                reason=reason,
                extra={"notes": notes, "processed_by": processed_by},
            )
        )

    def mark_processing(self, withdrawal_id: Any, notes: str = "") -> ApiResponse:
        return self.perform(
            ActionRequest(withdrawal_id, ActionType.PROCESSING, extra={"notes": notes})
        )


class SupportService(ResourceService):
    TICKET_STATUSES = ("open", "in_progress", "resolved", "closed")
    TICKET_PRIORITIES = ("low", "medium", "high", "urgent")

    def __init__(self, client: AdminApiClient):
        super().__init__(client, TICKETS)

    def _status_endpoint(self, ticket_id: Any) -> str:
        return f"/api/core/tickets/{ticket_id}/update-status/"

    def update_status(self, ticket_id: Any, status: str, admin_notes: str = "") -> ApiResponse:
        if not ticket_id:
            return ApiResponse.fail("Ticket ID is required", ErrorKind.VALIDATION)
        if status not in self.TICKET_STATUSES:
            return ApiResponse.fail(
                f"Status must be one of: {', '.join(self.TICKET_STATUSES)}",
                ErrorKind.VALIDATION,
            )
        response = self.client.put(
            self._status_endpoint(ticket_id),
            body={"status": status, "admin_notes": admin_notes},
        )
        if response.success and not response.message:
            response.message = "Ticket status updated successfully"
        return response

    def update_priority(self, ticket_id: Any, priority: str) -> ApiResponse:
        if not ticket_id:
            return ApiResponse.fail("Ticket ID is required", ErrorKind.VALIDATION)
        if priority not in self.TICKET_PRIORITIES:
            return ApiResponse.fail(
                f"Priority must be one of: {', '.join(self.TICKET_PRIORITIES)}",
                ErrorKind.VALIDATION,
            )
        response = self.client.put(
            self._status_endpoint(ticket_id), body={"priority": priority}
        )
        if response.success and not response.message:
            response.message = "Ticket priority updated successfully"
        return response

    def resolve(self, ticket_id: Any, notes: str = "") -> ApiResponse:
        return self.perform(ActionRequest(ticket_id, ActionType.RESOLVE, reason=notes))

    def close(self, ticket_id: Any, notes: str = "") -> ApiResponse:
        return self.perform(ActionRequest(ticket_id, ActionType.CLOSE, reason=notes))

    def reply(self, ticket_id: Any, message: str) -> ApiResponse:
        if not ticket_id:
            return ApiResponse.fail("Ticket ID is required", ErrorKind.VALIDATION)
        if not message or not message.strip():
            return ApiResponse.fail("Message is required", ErrorKind.VALIDATION)
        response = self.client.post(
            f"/api/core/tickets/{ticket_id}/replies/create/",
            body={"ticket": ticket_id, "message": message},
        )
        if response.success and not response.message:
            response.message = "Reply posted successfully"
        return response

    def statistics(self) -> ApiResponse:
        """Counts by status and priority over the first page of tickets."""
        response = self.list(ListQuery(page_size=100))
        if not response.success:
            return response
        tickets = response.data.items
        stats = {"total": len(tickets)}
        for status in self.TICKET_STATUSES:
            stats[status] = sum(1 for t in tickets if t.get("status") == status)
        stats["high_priority"] = sum(1 for t in tickets if t.get("priority") == "high")
        stats["urgent"] = sum(1 for t in tickets if t.get("priority") == "urgent")
        return ApiResponse.ok(data=stats)


class UserService(ResourceService):
    def __init__(self, client: AdminApiClient):
        super().__init__(client, USERS)
        self.designations = ResourceService(client, DESIGNATIONS)

    def block(self, user_id: Any, reason: str = DEFAULT_BLOCK_REASON) -> ApiResponse:
        return self.perform(ActionRequest(user_id, ActionType.BLOCK, reason=reason))

    def unblock(self, user_id: Any) -> ApiResponse:
        return self.perform(ActionRequest(user_id, ActionType.UNBLOCK))

    def verify(self, user_id: Any) -> ApiResponse:
        return self.perform(ActionRequest(user_id, ActionType.VERIFY))

    def unverify(self, user_id: Any) -> ApiResponse:
        return self.perform(ActionRequest(user_id, ActionType.UNVERIFY))

    def delete_user(self, user_id: Any, reason: str = DEFAULT_DELETE_REASON) -> ApiResponse:
        return self.perform(ActionRequest(user_id, ActionType.DELETE, reason=reason))

    def list_designations(self) -> ApiResponse:
        return self.designations.list()

    def create_designation(self, title: str) -> ApiResponse:
        if not title or not title.strip():
            return ApiResponse.fail("Designation title is required", ErrorKind.VALIDATION)
        return self.designations.create({"title": title.strip()})

    def update_designation(self, designation_id: Any, title: str) -> ApiResponse:
        if not title or not title.strip():
            return ApiResponse.fail("Designation title is required", ErrorKind.VALIDATION)
        return self.designations.update(designation_id, {"title": title.strip()})

    def delete_designation(self, designation_id: Any) -> ApiResponse:
        return self.designations.remove(designation_id)


class ContentService:
    """Static site content: settings (policies, terms) and FAQs."""

    def __init__(self, client: AdminApiClient):
        self.settings = ResourceService(client, SETTINGS)
        self.faqs = ResourceService(client, FAQS)

    def list_settings(self) -> ApiResponse:
        return self.settings.list()

    def get_setting(self, setting_type: str) -> ApiResponse:
        return self.settings.detail(setting_type)

    def create_setting(self, payload: Mapping[str, Any]) -> ApiResponse:
        return self.settings.create(payload)

    def update_setting(self, setting_type: str, payload: Mapping[str, Any]) -> ApiResponse:
        return self.settings.update(setting_type, payload)

    def delete_setting(self, setting_type: str) -> ApiResponse:
        return self.settings.remove(setting_type)

    @staticmethod
    def faq_payload(faq: Mapping[str, Any]) -> Dict[str, Any]:
        return {
            "question": faq.get("question") or "",
            "answer": faq.get("answer") or "",
            "is_active": faq.get("is_active", True) if faq.get("is_active") is not None else True,
            "order": faq.get("order") or 0,
        }

    def list_faqs(self, page: int = 1, search: str = "") -> ApiResponse:
        return self.faqs.list(ListQuery(page=page, search=search))

    def get_faq(self, faq_id: Any) -> ApiResponse:
        return self.faqs.detail(faq_id)

    def create_faq(self, faq: Mapping[str, Any]) -> ApiResponse:
        payload = self.faq_payload(faq)
        if not payload["question"].strip() or not payload["answer"].strip():
            return ApiResponse.fail("Question and answer are required", ErrorKind.VALIDATION)
        return self.faqs.create(payload)

    def update_faq(self, faq_id: Any, faq: Mapping[str, Any]) -> ApiResponse:
        return self.faqs.update(faq_id, self.faq_payload(faq))

    def delete_faq(self, faq_id: Any) -> ApiResponse:
        return self.faqs.remove(faq_id)


class NotificationService(ResourceService):
    BASE = "/api/core/notifications"

    def __init__(self, client: AdminApiClient):
        super().__init__(client, NOTIFICATIONS)

    def unread_count(self) -> ApiResponse:
        response = self.client.get(f"{self.BASE}/unread-count/")
        if not response.success:
            return response
        payload = response.data if isinstance(response.data, dict) else {}
        inner = payload.get("data") if isinstance(payload.get("data"), dict) else payload
        count = inner.get("unread_count")
        if not isinstance(count, int):
            return ApiResponse.fail(
                "Unexpected response from server for unread count", ErrorKind.SHAPE
            )
        return ApiResponse.ok(data=count, message=response.message)

    def _post_empty(self, endpoint: str, default_message: str) -> ApiResponse:
        response = self.client.post(endpoint, body={})
        if response.success:
            response.message = _message(response, default_message)
        return response

    def mark_read(self, notification_id: Any) -> ApiResponse:
        return self._post_empty(
            f"{self.BASE}/{notification_id}/mark-read/", "Notification marked as read"
        )

    def mark_unread(self, notification_id: Any) -> ApiResponse:
        return self._post_empty(
            f"{self.BASE}/{notification_id}/mark-unread/", "Notification marked as unread"
        )

    def mark_all_read(self) -> ApiResponse:
        return self._post_empty(
            f"{self.BASE}/mark-all-read/", "All notifications marked as read"
        )

    def delete_notification(self, notification_id: Any) -> ApiResponse:
        return self.remove(notification_id)

    def clear_all(self) -> ApiResponse:
        response = self.client.delete(f"{self.BASE}/clear-all/")
        if response.success:
            response.message = _message(response, "All notifications cleared")
        return response


def validate_password_change(old_password: str, new_password: str, new_password2: str) -> Optional[str]:
    if not old_password or not new_password or not new_password2:
        return "All password fields are required"
    if new_password != new_password2:
        return "New passwords do not match"
    if len(new_password) < MIN_PASSWORD_LENGTH:
        return f"New password must be at least {MIN_PASSWORD_LENGTH} characters long"
    return None


class AuthService:
    """Login/logout and the anonymous account-recovery flows."""

    LOGIN = "/api/accounts/login/"
    VERIFY_EMAIL = "/api/accounts/verify-email/"
    RESEND_OTP = "/api/accounts/resend-otp/"
    SET_PASSWORD = "/api/accounts/set-password/"
    PASSWORD_RESET_VERIFY_OTP = "/api/accounts/password-reset/verify-otp/"
    PASSWORD_RESET_CONFIRM = "/api/accounts/password-reset/confirm/"
    PASSWORD_CHANGE = "/api/accounts/password/change/"

    def __init__(self, client: AdminApiClient, session_store: SessionStore):
        self.client = client
        self.session_store = session_store
        self.logger = logging.getLogger(self.__class__.__name__)

    def login(self, email: str, password: str, remember_me: bool = False) -> ApiResponse:
        if not email or not password:
            return ApiResponse.fail("Email and password are required", ErrorKind.VALIDATION)
        self.logger.info(f"Attempting admin login for {email}")
        response = self.client.post(
            self.LOGIN, body={"email": email, "password": password}, authorize=False
        )
        if not response.success:
            return response

        data = response.data.get("data") if isinstance(response.data, dict) else None
        token = data.get("access") if isinstance(data, dict) else None
        if not token:
            self.logger.error("Login succeeded but no access token in response")
            return ApiResponse.fail(
                "Login response did not contain an access token", ErrorKind.SHAPE
            )
        self.session_store.set_token(token, remember_me)
        self.session_store.set_user(data.get("user"))
        self.logger.info(f"Admin {email} logged in")
        return ApiResponse.ok(
            data={"user": data.get("user"), "refresh": data.get("refresh")},
            message=_message(response, "Login successful"),
            status=response.status,
        )

    def logout(self) -> ApiResponse:
        self.session_store.clear()
        return ApiResponse.ok(message="Logged out successfully")

    def is_authenticated(self) -> bool:
        return self.session_store.is_authenticated()

    def current_user(self) -> Optional[Record]:
        return self.session_store.get_user()

    def _post(self, endpoint: str, body: Dict[str, Any], default_message: str) -> ApiResponse:
        response = self.client.post(endpoint, body=body, authorize=False)
        if response.success:
            response.message = _message(response, default_message)
        return response

    def verify_email(self, email: str, otp: str) -> ApiResponse:
        return self._post(self.VERIFY_EMAIL, {"email": email, "otp": otp}, "Email verified successfully")

    def resend_otp(self, email: str, purpose: str = "verification") -> ApiResponse:
        return self._post(self.RESEND_OTP, {"email": email, "purpose": purpose}, "OTP sent successfully")

    def set_password(self, email: str, password: str, password2: str) -> ApiResponse:
        if password != password2:
            return ApiResponse.fail("Passwords do not match", ErrorKind.VALIDATION)
        return self._post(
            self.SET_PASSWORD,
            {"email": email, "password": password, "password2": password2},
            "Password set successfully",
        )

    def password_reset_verify_otp(self, email: str, otp: str) -> ApiResponse:
        return self._post(
            self.PASSWORD_RESET_VERIFY_OTP, {"email": email, "otp": otp}, "OTP verified successfully"
        )

    def password_reset_confirm(
        self, email: str, otp: str, new_password: str, new_password2: str
    ) -> ApiResponse:
        if new_password != new_password2:
            return ApiResponse.fail("New passwords do not match", ErrorKind.VALIDATION)
        return self._post(
            self.PASSWORD_RESET_CONFIRM,
            {
                "email": email,
                "otp": otp,
                "new_password": new_password,
                "new_password2": new_password2,
            },
            "Password reset successfully",
        )


class ProfileService:
    PROFILE = "/api/hospitality/profile-management/"
    TEXT_FIELDS = (
        "venue_name",
        "hospitality_venue_type",
        "capacity",
        "hours_of_operation",
        "location",
        "mobile_number",
    )
    FILE_FIELDS = ("profile_picture", "resume")

    def __init__(self, client: AdminApiClient):
        self.client = client

    def get_profile(self) -> ApiResponse:
        response = self.client.get(self.PROFILE)
        if response.success and isinstance(response.data, dict) and isinstance(response.data.get("data"), dict):
            response.data = response.data["data"]
        return response

    def update_profile(
        self,
        fields: Mapping[str, Any],
        files: Optional[Mapping[str, Tuple[Any, ...]]] = None,
    ) -> ApiResponse:
        """Multipart PUT; only non-empty text fields and known file parts are sent."""
        form = {key: fields[key] for key in self.TEXT_FIELDS if fields.get(key)}
        parts = {key: value for key, value in (files or {}).items() if key in self.FILE_FIELDS}
        if not form and not parts:
            return ApiResponse.fail("Nothing to update", ErrorKind.VALIDATION)
        response = self.client.upload(self.PROFILE, files=parts, form=form, method="PUT")
        if response.success:
            response.message = _message(response, "Profile updated successfully")
        return response

    def change_password(self, old_password: str, new_password: str, new_password2: str) -> ApiResponse:
        problem = validate_password_change(old_password, new_password, new_password2)
        if problem:
            return ApiResponse.fail(problem, ErrorKind.VALIDATION)
        response = self.client.post(
            AuthService.PASSWORD_CHANGE,
            body={
                "old_password": old_password,
                "new_password": new_password,
                "new_password2": new_password2,
            },
        )
        if response.success:
            response.message = _message(response, "Password changed successfully")
        return response
