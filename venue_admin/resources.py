"""
Catalogue of the admin backend's resource families.

Each ResourceSpec names a collection's endpoints, the one envelope shape its
list endpoint returns, the free-text fields used for local narrowing and
degraded-mode filtering, and how each action verb is sent. Everything that
differs between the banner, promotion, registration, withdrawal, ticket and
user screens lives here; the list controller and services are generic.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from venue_admin.models import (
    REASON_REQUIRED_ACTIONS,
    ActionRequest,
    ActionType,
    ListResult,
    Record,
)


class ResponseShapeError(ValueError):
    """The server answered with an envelope this resource does not use."""


# --- list envelope decoders ---


def decode_paginated(payload: Any) -> ListResult[Record]:
    """`{results: [...], count, next, previous}`"""
    if not isinstance(payload, dict) or not isinstance(payload.get("results"), list):
        raise ResponseShapeError(
            f"Expected a paginated object with a 'results' list, got {type(payload).__name__}"
        )
    results = payload["results"]
    count = payload.get("count")
    return ListResult(
        items=results,
        total_count=count if isinstance(count, int) else len(results),
        next_page=payload.get("next"),
        previous_page=payload.get("previous"),
    )


def decode_data_list(payload: Any) -> ListResult[Record]:
    """`{data: [...], total?}`"""
    if not isinstance(payload, dict) or not isinstance(payload.get("data"), list):
        raise ResponseShapeError(
            f"Expected an object with a 'data' list, got {type(payload).__name__}"
        )
    items = payload["data"]
    total = payload.get("total", payload.get("count"))
    return ListResult(items=items, total_count=total if isinstance(total, int) else len(items))


def decode_data_nested(key: str) -> Callable[[Any], ListResult[Record]]:
    """`{data: {<key>: [...], statistics?}}`"""

    def decode(payload: Any) -> ListResult[Record]:
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict) or not isinstance(data.get(key), list):
            raise ResponseShapeError(f"Expected 'data.{key}' to be a list")
        items = data[key]
        total = data.get("count", data.get("total"))
        return ListResult(items=items, total_count=total if isinstance(total, int) else len(items))

    return decode


def decode_bare_list(payload: Any) -> ListResult[Record]:
    """A top-level JSON array"""
    if not isinstance(payload, list):
        raise ResponseShapeError(
            f"Expected a JSON array, got {type(payload).__name__}"
        )
    return ListResult(items=payload, total_count=len(payload))


def decode_data_record(payload: Any) -> Record:
    """`{data: {...}, message?}`"""
    if not isinstance(payload, dict) or not isinstance(payload.get("data"), dict):
        raise ResponseShapeError("Expected an object with a 'data' record")
    return payload["data"]


def decode_bare_record(payload: Any) -> Record:
    if not isinstance(payload, dict):
        raise ResponseShapeError("Expected a JSON object record")
    return payload


# --- actions ---


def validate_action(request: ActionRequest) -> Optional[str]:
    """Client-side validation; returns the message to show, or None."""
    if request.action_type in REASON_REQUIRED_ACTIONS and not (request.reason or "").strip():
        return f"A reason is required to {request.action_type.value}."
    return None


BodyBuilder = Callable[[ActionRequest], Optional[Dict[str, Any]]]
QueryBuilder = Callable[[ActionRequest], Optional[Dict[str, Any]]]


@dataclass(frozen=True)
class ActionSpec:
    method: str
    path: str  # formatted with id=
    body: BodyBuilder = lambda request: {}
    query: QueryBuilder = lambda request: None
    # fields the item takes after the transition; None means "re-fetch"
    patch: Optional[Dict[str, Any]] = None
    removes: bool = False

    def endpoint(self, entity_id: Any) -> str:
        return self.path.format(id=entity_id)


def _reason_body(field_name: str) -> BodyBuilder:
    def build(request: ActionRequest) -> Dict[str, Any]:
        return {field_name: request.reason}

    return build


def _action_body(request: ActionRequest) -> Dict[str, Any]:
    body: Dict[str, Any] = {"action": request.action_type.value}
    if request.reason:
        body["reason"] = request.reason
    return body


def _status_transition(default_from: str, default_to: str) -> QueryBuilder:
    def build(request: ActionRequest) -> Dict[str, Any]:
        return {
            "status": [
                request.extra.get("current_status") or default_from,
                request.extra.get("new_status") or default_to,
            ]
        }

    return build


def _withdrawal_body(include_reason: bool) -> BodyBuilder:
    def build(request: ActionRequest) -> Dict[str, Any]:
        body = {
            "notes": request.extra.get("notes", ""),
            "processed_by": request.extra.get("processed_by", ""),
        }
        if include_reason:
            body["reason"] = request.reason or ""
        return body

    return build


def _ticket_status_body(status: str) -> BodyBuilder:
    def build(request: ActionRequest) -> Dict[str, Any]:
        return {"status": status, "admin_notes": request.reason or ""}

    return build


@dataclass(frozen=True)
class ResourceSpec:
    name: str
    label: str
    list_path: str
    detail_path: str
    decode_list: Callable[[Any], ListResult[Record]]
    decode_detail: Callable[[Any], Record] = decode_data_record
    search_fields: Tuple[str, ...] = ()
    filter_keys: Tuple[str, ...] = ()
    status_field: Optional[str] = "status"
    title_field: str = "title"
    pending_path: Optional[str] = None
    actions: Mapping[ActionType, ActionSpec] = field(default_factory=dict)
    persist_degraded_cache: bool = False

    def detail_endpoint(self, entity_id: Any) -> str:
        return self.detail_path.format(id=entity_id)

    def action(self, action_type: ActionType) -> Optional[ActionSpec]:
        return self.actions.get(action_type)

    def matches_search(self, item: Record, term: str) -> bool:
        needle = (term or "").strip().lower()
        if not needle:
            return True
        for field_name in self.search_fields:
            value = item.get(field_name)
            if value is not None and needle in str(value).lower():
                return True
        return False

    def filter_items(self, items: Iterable[Record], term: str) -> List[Record]:
        return [item for item in items if self.matches_search(item, term)]


BANNERS = ResourceSpec(
    name="banners",
    label="Banner",
    list_path="/api/dashboard/admin/banners/all",
    pending_path="/api/dashboard/admin/banners/pending/",
    detail_path="/api/dashboard/admin/banners/{id}/",
    decode_list=decode_data_nested("banners"),
    search_fields=("title", "submitted_by_venue_name", "description"),
    filter_keys=("status",),
    status_field="approval_status",
    actions={
        ActionType.APPROVE: ActionSpec(
            "POST",
            "/api/dashboard/admin/banners/{id}/approve/",
            patch={"approval_status": "approved"},
        ),
        ActionType.REJECT: ActionSpec(
            "POST",
            "/api/dashboard/admin/banners/{id}/reject/",
            body=_reason_body("rejection_reason"),
            patch={"approval_status": "rejected"},
        ),
    },
)

PROMOTIONS = ResourceSpec(
    name="promotions",
    label="Promotion",
    list_path="/api/dashboard/admin/promotions/all",
    pending_path="/api/dashboard/admin/promotions/pending/",
    detail_path="/api/dashboard/admin/promotions/{id}/",
    decode_list=decode_data_list,
    search_fields=("title", "venue_name", "description"),
    filter_keys=("status",),
    status_field="approval_status",
    actions={
        ActionType.APPROVE: ActionSpec(
            "POST",
            "/api/dashboard/admin/promotions/{id}/approve/",
            patch={"approval_status": "approved"},
        ),
        ActionType.REJECT: ActionSpec(
            "POST",
            "/api/dashboard/admin/promotions/{id}/reject/",
            body=_reason_body("rejection_reason"),
            patch={"approval_status": "rejected"},
        ),
    },
)

REGISTRATIONS = ResourceSpec(
    name="registrations",
    label="Registration",
    list_path="/api/dashboard/admin/registrations/",
    detail_path="/api/dashboard/admin/registrations/{id}/",
    decode_list=decode_paginated,
    decode_detail=decode_data_record,
    search_fields=("full_name", "name", "email", "venue_name"),
    filter_keys=(
        "type",
        "subscription_type",
        "is_verified",
        "is_active",
        "is_blocked",
        "status",
    ),
    title_field="full_name",
    actions={
        ActionType.APPROVE: ActionSpec(
            "POST",
            "/api/dashboard/admin/registrations/{id}/action/",
            body=_action_body,
            patch={"status": "approved"},
        ),
        ActionType.REJECT: ActionSpec(
            "POST",
            "/api/dashboard/admin/registrations/{id}/action/",
            body=_action_body,
            patch={"status": "rejected"},
        ),
        ActionType.BLOCK: ActionSpec(
            "POST",
            "/api/dashboard/admin/registrations/{id}/action/",
            body=_action_body,
            patch={"is_blocked": True},
        ),
        ActionType.DELETE: ActionSpec(
            "DELETE",
            "/api/dashboard/admin/registrations/{id}/",
            body=lambda request: None,
            removes=True,
        ),
    },
)

WITHDRAWALS = ResourceSpec(
    name="withdrawals",
    label="Withdrawal request",
    list_path="/api/dashboard/admin/withdrawals/",
    pending_path="/api/dashboard/admin/withdrawals/pending/",
    detail_path="/api/dashboard/admin/withdrawals/{id}/",
    decode_list=decode_paginated,
    search_fields=("venue_name", "venue_email", "id"),
    filter_keys=(
        "status",
        "venue_id",
        "venue_name",
        "from_date",
        "to_date",
        "min_amount",
        "max_amount",
    ),
    title_field="venue_name",
    actions={
        ActionType.APPROVE: ActionSpec(
            "POST",
            "/api/dashboard/admin/withdrawals/{id}/approve/",
            body=_withdrawal_body(include_reason=False),
            query=_status_transition("processing", "completed"),
            patch={"status": "completed"},
        ),
        ActionType.REJECT: ActionSpec(
            "POST",
            "/api/dashboard/admin/withdrawals/{id}/reject/",
            body=_withdrawal_body(include_reason=True),
            query=_status_transition("processing", "rejected"),
            patch={"status": "rejected"},
        ),
        ActionType.PROCESSING: ActionSpec(
            "POST",
            "/api/dashboard/admin/withdrawals/{id}/processing/",
            body=_withdrawal_body(include_reason=False),
            query=_status_transition("pending", "processing"),
            patch={"status": "processing"},
        ),
    },
)

TICKETS = ResourceSpec(
    name="tickets",
    label="Support ticket",
    list_path="/api/core/tickets/",
    detail_path="/api/core/tickets/{id}/",
    decode_list=decode_paginated,
    search_fields=("subject", "description", "user_email"),
    filter_keys=("status", "priority", "user_email"),
    title_field="subject",
    actions={
        ActionType.RESOLVE: ActionSpec(
            "PUT",
            "/api/core/tickets/{id}/update-status/",
            body=_ticket_status_body("resolved"),
            patch={"status": "resolved"},
        ),
        ActionType.CLOSE: ActionSpec(
            "PUT",
            "/api/core/tickets/{id}/update-status/",
            body=_ticket_status_body("closed"),
            patch={"status": "closed"},
        ),
        ActionType.DELETE: ActionSpec(
            "DELETE",
            "/api/core/tickets/{id}/",
            body=lambda request: None,
            removes=True,
        ),
    },
)

USERS = ResourceSpec(
    name="users",
    label="User",
    list_path="/api/dashboard/admin/users/",
    detail_path="/api/dashboard/admin/users/{id}/",
    decode_list=decode_paginated,
    search_fields=("name", "full_name", "email", "user_id", "id"),
    filter_keys=("user_type", "is_active", "is_blocked"),
    status_field=None,
    title_field="full_name",
    persist_degraded_cache=True,
    actions={
        ActionType.BLOCK: ActionSpec(
            "POST",
            "/api/dashboard/admin/users/{id}/action/",
            body=_action_body,
            patch={"is_blocked": True},
        ),
        ActionType.UNBLOCK: ActionSpec(
            "POST",
            "/api/dashboard/admin/users/{id}/action/",
            body=_action_body,
            patch={"is_blocked": False},
        ),
        ActionType.VERIFY: ActionSpec(
            "POST",
            "/api/dashboard/admin/users/{id}/action/",
            body=_action_body,
            patch={"is_verified": True},
        ),
        ActionType.UNVERIFY: ActionSpec(
            "POST",
            "/api/dashboard/admin/users/{id}/action/",
            body=_action_body,
            patch={"is_verified": False},
        ),
        ActionType.DELETE: ActionSpec(
            "POST",
            "/api/dashboard/admin/users/{id}/action/",
            body=_action_body,
            removes=True,
        ),
    },
)

NOTIFICATIONS = ResourceSpec(
    name="notifications",
    label="Notification",
    list_path="/api/core/notifications/",
    detail_path="/api/core/notifications/{id}/",
    decode_list=decode_paginated,
    search_fields=("title", "message"),
    filter_keys=("is_read", "type"),
    status_field=None,
)

FAQS = ResourceSpec(
    name="faqs",
    label="FAQ",
    list_path="/api/core/faqs/",
    detail_path="/api/core/faqs/{id}/",
    decode_list=decode_paginated,
    decode_detail=decode_bare_record,
    search_fields=("question", "answer"),
    status_field=None,
    title_field="question",
    actions={
        ActionType.DELETE: ActionSpec(
            "DELETE",
            "/api/core/faqs/{id}/",
            body=lambda request: None,
            removes=True,
        ),
    },
)

SETTINGS = ResourceSpec(
    name="settings",
    label="Setting",
    list_path="/api/core/settings/",
    detail_path="/api/core/settings/{id}/",
    decode_list=decode_bare_list,
    decode_detail=decode_bare_record,
    search_fields=("setting_type", "title", "content"),
    status_field=None,
    title_field="setting_type",
)

DESIGNATIONS = ResourceSpec(
    name="designations",
    label="Designation",
    list_path="/api/dashboard/admin/designations/",
    detail_path="/api/dashboard/admin/designations/{id}/",
    decode_list=decode_bare_list,
    decode_detail=decode_bare_record,
    search_fields=("title",),
    status_field=None,
)

RESOURCES: Dict[str, ResourceSpec] = {
    spec.name: spec
    for spec in (
        BANNERS,
        PROMOTIONS,
        REGISTRATIONS,
        WITHDRAWALS,
        TICKETS,
        USERS,
        NOTIFICATIONS,
        FAQS,
        SETTINGS,
        DESIGNATIONS,
    )
}


def get_resource(name: str) -> ResourceSpec:
    try:
        return RESOURCES[name]
    except KeyError:
        raise KeyError(f"Unknown resource '{name}'") from None
