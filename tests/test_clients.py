from datetime import date

import pytest

import clients
import db
import preferences
from errors import NotFoundError, ValidationError
from models import get_plan

TODAY = date(2026, 1, 15)


def form(**overrides):
    data = {
        "first_name": "Maria",
        "last_name": "Santos",
        "email": "maria@example.com",
        "phone": "09181234567",
        "address": "45 Rizal Ave.",
        "plan": "premium",
        "is_connected": True,
        "plan_start_date": "2026-01-01",
        "due_date": "2026-02-01",
    }
    data.update(overrides)
    return data


def test_new_client_defaults():
    defaults = clients.new_client_defaults(TODAY)

    assert defaults["due_date"] == "2026-02-14"
    assert defaults["plan_start_date"] == "2026-01-15"
    assert defaults["status"] == "pending"
    assert defaults["plan"] == "basic"
    assert defaults["is_connected"] is False


def test_normalize_phone():
    assert clients.normalize_phone("0917-123-4567") == "09171234567"
    assert clients.normalize_phone("+63 917 123 4567") == "639171234567"
    assert clients.normalize_phone(None) == ""


def test_validate_client_collects_every_error():
    errors = clients.validate_client(
        form(first_name=" ", phone="0917", email="not-an-email", plan="gold", due_date="soon")
    )

    assert "First name is required." in errors
    assert "Please enter a valid 11-digit Philippine mobile number." in errors
    assert "Email address is not valid." in errors
    assert any(e.startswith("Plan must be one of") for e in errors)
    assert any(e.startswith("Due date") for e in errors)


def test_validate_client_allows_blank_email():
    assert clients.validate_client(form(email="")) == []


def test_create_client_never_starts_archived():
    client_id = clients.create_client(form(archived=True, phone="0918-123-4567"))

    stored = db.get_document("clients", client_id)
    assert stored["archived"] is False
    assert stored["status"] == "pending"
    assert stored["phone"] == "09181234567"
    assert stored["is_connected"] is True


def test_create_client_invalid_raises():
    with pytest.raises(ValidationError) as exc:
        clients.create_client(form(phone="123"))
    assert exc.value.errors == ["Please enter a valid 11-digit Philippine mobile number."]
    assert db.get_documents("clients") == []


def test_create_client_rejects_twelve_digit_phone():
    with pytest.raises(ValidationError) as exc:
        clients.create_client(form(phone="+63 917 123 4567"))
    assert exc.value.errors == ["Please enter a valid 11-digit Philippine mobile number."]
    assert db.get_documents("clients") == []


def test_update_client(make_client):
    client = make_client()

    clients.update_client(client["id"], {"plan": "ultimate", "first_name": "  Juana "})

    stored = db.get_document("clients", client["id"])
    assert stored["plan"] == "ultimate"
    assert stored["first_name"] == "Juana"


def test_update_client_missing_raises():
    with pytest.raises(NotFoundError):
        clients.update_client("nope", form())


def test_archive_and_restore(make_client):
    client = make_client()

    clients.archive_client(client["id"])
    active, archived = clients.fetch_clients(today=TODAY)
    assert active == []
    assert [c["id"] for c in archived] == [client["id"]]

    clients.restore_client(client["id"])
    active, archived = clients.fetch_clients(today=TODAY)
    assert [c["id"] for c in active] == [client["id"]]
    assert archived == []


def test_fetch_clients_sweeps_overdue(make_client):
    late = make_client(status="paid", due_date="2026-01-10", is_connected=True)
    already = make_client(status="overdue", due_date="2026-01-01")
    on_time = make_client(status="paid", due_date="2026-01-15")
    archived_late = make_client(status="pending", due_date="2025-12-01", archived=True)

    active, _ = clients.fetch_clients(today=TODAY)

    by_id = {c["id"]: c for c in active}
    assert by_id[late["id"]]["status"] == "overdue"
    assert db.get_document("clients", late["id"])["status"] == "overdue"
    assert db.get_document("clients", late["id"])["is_connected"] is True
    # untouched documents keep an empty updated_at
    assert db.get_document("clients", already["id"])["updated_at"] is None
    assert db.get_document("clients", on_time["id"])["status"] == "paid"
    assert db.get_document("clients", archived_late["id"])["status"] == "pending"


def test_sweep_disconnects_when_auto_disconnect_enabled(make_client):
    preferences.save_system_settings({"auto_disconnect": True})
    late = make_client(status="paid", due_date="2026-01-10", is_connected=True)

    clients.fetch_clients(today=TODAY)

    stored = db.get_document("clients", late["id"])
    assert stored["status"] == "overdue"
    assert stored["is_connected"] is False


def test_sweep_skips_unreadable_due_date(make_client):
    odd = make_client(status="paid", due_date="someday")

    active, _ = clients.fetch_clients(today=TODAY)

    assert active[0]["status"] == "paid"
    assert db.get_document("clients", odd["id"])["status"] == "paid"


def test_sweep_raises_when_client_deleted_after_read(make_client, monkeypatch):
    gone = make_client(status="pending", due_date="2026-01-01")
    stale = db.get_documents("clients")
    db.delete_document("clients", gone["id"])
    monkeypatch.setattr(clients.db, "get_documents", lambda collection: stale)

    with pytest.raises(NotFoundError):
        clients.fetch_clients(today=TODAY)


def test_sort_clients():
    rows = [
        {"last_name": "reyes", "status": "paid", "plan": "basic", "due_date": "2026-03-01"},
        {"last_name": "Abad", "status": "overdue", "plan": "ultimate", "due_date": None},
        {"last_name": "Cruz", "status": "pending", "plan": "premium", "due_date": "2026-02-01"},
        {"last_name": "Bautista", "status": "cancelled", "plan": "legacy", "due_date": "2026-01-20"},
    ]

    def names(criteria):
        return [c["last_name"] for c in clients.sort_clients(rows, criteria)]

    assert names("due_date") == ["Bautista", "Cruz", "reyes", "Abad"]
    assert names("status") == ["Abad", "Cruz", "reyes", "Bautista"]
    assert names("last_name") == ["Abad", "Bautista", "Cruz", "reyes"]
    assert names("plan") == ["Abad", "Cruz", "reyes", "Bautista"]
    assert names("unknown") == [c["last_name"] for c in rows]


def test_client_stats():
    rows = [
        {"is_connected": True, "status": "paid"},
        {"is_connected": False, "status": "overdue"},
        {"is_connected": True, "status": "overdue"},
    ]
    assert clients.client_stats(rows) == {"total": 3, "connected": 2, "overdue": 2}


def test_days_until_due_and_label():
    assert clients.days_until_due("2026-01-20", TODAY) == 5
    assert clients.days_until_due(None, TODAY) is None
    assert clients.due_label("2026-01-12", TODAY) == "3 day(s) overdue"
    assert clients.due_label("2026-01-15", TODAY) == "Due today"
    assert clients.due_label("2026-01-16", TODAY) == "Due in 1 day(s)"


def test_plan_display(monkeypatch):
    monkeypatch.setattr(clients.utils.config, "CURRENCY", "₱")
    assert clients.plan_display("premium") == "₱1,500.00 (30 Mbps)"
    assert clients.plan_display("legacy") == "₱0.00 (0 Mbps)"


def test_plan_label_uses_configured_currency(monkeypatch):
    monkeypatch.setattr(clients.utils.config, "CURRENCY", "$")
    assert get_plan("standard").label == "Standard - $1,000 (20 Mbps)"


def test_clients_to_csv_bytes(make_client):
    make_client()
    text = clients.clients_to_csv_bytes(db.get_documents("clients")).decode("utf-8")

    header, row = text.strip().splitlines()
    assert header == "Name,Phone,Email,Plan,Status,Connection,Due Date,Due"
    assert row.startswith("Juan Dela Cruz,09171234567,juan@example.com,")
