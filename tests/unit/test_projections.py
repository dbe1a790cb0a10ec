import pytest

from venue_admin.projections import (
    NO_DESCRIPTION,
    NOT_AVAILABLE,
    format_amount,
    format_date,
    project,
    project_banner,
    project_ticket,
    project_user,
    project_withdrawal,
    status_label,
)


@pytest.mark.unit
def test_banner_projection_fills_defaults() -> None:
    projection = project_banner({"id": 7})

    assert projection["title"] == "Banner 7"
    assert projection["submitted_by"] == NOT_AVAILABLE
    assert projection["status"] == "Pending"
    assert projection["date_submitted"] == NOT_AVAILABLE
    assert projection["description"] == NO_DESCRIPTION


@pytest.mark.unit
def test_banner_projection_formats_known_values() -> None:
    projection = project_banner(
        {
            "id": 7,
            "title": "Summer Night",
            "submitted_by_venue_name": "Blue Bar",
            "approval_status": "rejected",
            "created_at": "2024-06-05T18:30:00Z",
            "rejection_reason": "Blurry <b>image</b>",
        }
    )

    assert projection["status"] == "Rejected"
    assert projection["date_submitted"] == "Jun 5, 2024"
    assert projection["rejection_reason"] == "Blurry <b>image</b>"


@pytest.mark.unit
@pytest.mark.parametrize(
    ("status", "label"),
    [("approved", "Approved"), ("IN_PROGRESS", "In Progress"), ("mystery", "Pending"), (None, "Pending")],
)
def test_status_label_table(status, label) -> None:
    assert status_label(status) == label


@pytest.mark.unit
@pytest.mark.parametrize("value", [None, "", "not a date", 42])
def test_unusable_dates_become_not_available(value) -> None:
    assert format_date(value) == NOT_AVAILABLE


@pytest.mark.unit
def test_withdrawal_projection_reads_nested_bank_details() -> None:
    projection = project_withdrawal(
        {
            "id": 5,
            "amount": "1250.5",
            "status": "processing",
            "bank_details": {"bank_name": "Lloyds", "bankholder_name": "Blue Bar Ltd"},
        }
    )

    assert projection["amount"] == "$1,250.50"
    assert projection["status"] == "Processing"
    assert projection["bank_name"] == "Lloyds"
    assert projection["account_number"] == NOT_AVAILABLE
    assert format_amount(None) == NOT_AVAILABLE


@pytest.mark.unit
def test_ticket_projection_defaults_to_open() -> None:
    projection = project_ticket({"id": 1, "replies": [{}, {}]})

    assert projection["status"] == "Open"
    assert projection["priority"] == NOT_AVAILABLE
    assert projection["replies"] == "2"


@pytest.mark.unit
def test_user_projection_accepts_nested_user_type() -> None:
    projection = project_user({"id": 1, "full_name": "Ada", "user_type": {"type": "venue"}, "is_blocked": False})

    assert projection["name"] == "Ada"
    assert projection["user_type"] == "venue"
    assert projection["blocked"] == "No"
    assert projection["verified"] == NOT_AVAILABLE


@pytest.mark.unit
def test_generic_projection_skips_nested_values() -> None:
    projection = project("faqs", {"id": 3, "question": "Q?", "answer": None, "tags": ["a"]})

    assert projection == {"id": "3", "question": "Q?", "answer": NOT_AVAILABLE}
