"""Flatten raw backend records into display dicts; missing values get defaults."""

import datetime
from typing import Any, Dict, Optional

from venue_admin.models import Record

NOT_AVAILABLE = "N/A"
NO_DESCRIPTION = "No description provided."

STATUS_LABELS = {
    "pending": "Pending",
    "approved": "Approved",
    "rejected": "Rejected",
    "processing": "Processing",
    "completed": "Completed",
    "open": "Open",
    "in_progress": "In Progress",
    "resolved": "Resolved",
    "closed": "Closed",
}

Projection = Dict[str, str]


def format_or_default(value: Any, default: str = NOT_AVAILABLE) -> str:
    if value is None or value == "":
        return default
    return str(value)


def status_label(status: Optional[str], default: str = "Pending") -> str:
    """Fixed status table; unknown or missing statuses fall back to `default`."""
    if not status:
        return default
    return STATUS_LABELS.get(str(status).lower(), default)


def parse_date(value: Any) -> Optional[datetime.datetime]:
    if isinstance(value, datetime.datetime):
        return value
    if isinstance(value, datetime.date):
        return datetime.datetime(value.year, value.month, value.day)
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.datetime.fromisoformat(text)
    except ValueError:
        return None


def format_date(value: Any) -> str:
    """`Jun 5, 2024`; missing or unparseable dates become N/A."""
    parsed = parse_date(value)
    if parsed is None:
        return NOT_AVAILABLE
    return f"{parsed.strftime('%b')} {parsed.day}, {parsed.year}"


def format_amount(value: Any) -> str:
    try:
        return f"${float(value):,.2f}"
    except (TypeError, ValueError):
        return NOT_AVAILABLE


def yes_no(value: Any) -> str:
    if value is None:
        return NOT_AVAILABLE
    return "Yes" if value else "No"


def project_banner(banner: Record) -> Projection:
    return {
        "id": format_or_default(banner.get("id")),
        "title": format_or_default(banner.get("title"), f"Banner {banner.get('id')}"),
        "submitted_by": format_or_default(banner.get("submitted_by_venue_name")),
        "type": format_or_default(banner.get("type"), "Banner"),
        "status": status_label(banner.get("approval_status")),
        "date_submitted": format_date(banner.get("created_at")),
        "image_url": format_or_default(banner.get("image"), ""),
        "description": format_or_default(banner.get("description"), NO_DESCRIPTION),
        "start_date": format_or_default(banner.get("start_date")),
        "start_time": format_or_default(banner.get("start_time")),
        "end_time": format_or_default(banner.get("end_time")),
        "location": format_or_default(banner.get("location_name")),
        "rejection_reason": format_or_default(banner.get("rejection_reason"), ""),
    }


def project_promotion(promotion: Record) -> Projection:
    return {
        "id": format_or_default(promotion.get("id")),
        "title": format_or_default(promotion.get("title"), f"Promotion {promotion.get('id')}"),
        "venue_name": format_or_default(promotion.get("venue_name")),
        "status": status_label(promotion.get("approval_status")),
        "date_submitted": format_date(promotion.get("created_at")),
        "start_date": format_date(promotion.get("start_date")),
        "end_date": format_date(promotion.get("end_date")),
        "image_url": format_or_default(promotion.get("image"), ""),
        "description": format_or_default(promotion.get("description"), NO_DESCRIPTION),
        "rejection_reason": format_or_default(promotion.get("rejection_reason"), ""),
    }


def registration_status(registration: Record) -> str:
    if registration.get("is_blocked"):
        return "Blocked"
    if registration.get("status"):
        return status_label(registration.get("status"))
    if registration.get("is_verified"):
        return "Verified"
    return "Pending"


def project_registration(registration: Record) -> Projection:
    return {
        "id": format_or_default(registration.get("id")),
        "name": format_or_default(
            registration.get("full_name") or registration.get("name")
        ),
        "business_name": format_or_default(registration.get("business_name")),
        "email": format_or_default(registration.get("email")),
        "phone_number": format_or_default(registration.get("phone_number")),
        "location": format_or_default(registration.get("location")),
        "type": format_or_default(registration.get("type")),
        "subscription_type": format_or_default(registration.get("subscription_type")),
        "status": registration_status(registration),
        "registered_on": format_date(registration.get("created_at")),
    }


def project_withdrawal(withdrawal: Record) -> Projection:
    bank = withdrawal.get("bank_details") or {}
    return {
        "id": format_or_default(withdrawal.get("id")),
        "venue_name": format_or_default(withdrawal.get("venue_name")),
        "venue_email": format_or_default(withdrawal.get("venue_email")),
        "venue_id": format_or_default(withdrawal.get("hospitality_venue")),
        "amount": format_amount(withdrawal.get("amount")),
        "status": status_label(withdrawal.get("status")),
        "requested_on": format_date(withdrawal.get("created_at")),
        "processed_on": format_date(withdrawal.get("processed_at")),
        "bank_name": format_or_default(bank.get("bank_name")),
        "account_number": format_or_default(bank.get("account_number")),
        "account_holder": format_or_default(bank.get("bankholder_name")),
        "notes": format_or_default(withdrawal.get("notes"), ""),
        "rejection_reason": format_or_default(withdrawal.get("reason"), ""),
    }


def project_ticket(ticket: Record) -> Projection:
    return {
        "id": format_or_default(ticket.get("id")),
        "subject": format_or_default(ticket.get("subject")),
        "submitted_by": format_or_default(ticket.get("user_email")),
        "status": status_label(ticket.get("status"), "Open"),
        "priority": format_or_default(str(ticket.get("priority") or "").capitalize()),
        "created": format_date(ticket.get("created_at")),
        "updated": format_date(ticket.get("updated_at")),
        "description": format_or_default(ticket.get("description"), NO_DESCRIPTION),
        "admin_notes": format_or_default(ticket.get("admin_notes"), ""),
        "replies": str(len(ticket.get("replies") or [])),
    }


def project_user(user: Record) -> Projection:
    user_type = user.get("user_type")
    if isinstance(user_type, dict):
        user_type = user_type.get("type")
    return {
        "id": format_or_default(user.get("id")),
        "name": format_or_default(user.get("name") or user.get("full_name")),
        "email": format_or_default(user.get("email")),
        "user_type": format_or_default(user_type),
        "verified": yes_no(user.get("is_verified")),
        "active": yes_no(user.get("is_active")),
        "blocked": yes_no(user.get("is_blocked")),
        "registered_on": format_date(user.get("registration_date") or user.get("date_joined")),
    }


def project_notification(notification: Record) -> Projection:
    return {
        "id": format_or_default(notification.get("id")),
        "title": format_or_default(notification.get("title"), "Notification"),
        "message": format_or_default(notification.get("message"), ""),
        "type": format_or_default(notification.get("type")),
        "read": yes_no(notification.get("is_read")),
        "created": format_date(notification.get("created_at")),
    }


PROJECTIONS = {
    "banners": project_banner,
    "promotions": project_promotion,
    "registrations": project_registration,
    "withdrawals": project_withdrawal,
    "tickets": project_ticket,
    "users": project_user,
    "notifications": project_notification,
}


def project(resource_name: str, record: Record) -> Projection:
    """Generic fallback renders every scalar field with the N/A default."""
    projection = PROJECTIONS.get(resource_name)
    if projection is not None:
        return projection(record)
    return {
        key: format_or_default(value)
        for key, value in record.items()
        if not isinstance(value, (dict, list))
    }
