from datetime import date

import pytest

import db
import payments
from errors import NotFoundError, ValidationError

TODAY = date(2026, 1, 10)


def test_new_due_date_extends_from_future_due_date():
    assert payments.compute_new_due_date("2026-01-20", 1, TODAY) == date(2026, 2, 20)
    assert payments.compute_new_due_date("2026-01-20", 12, TODAY) == date(2027, 1, 20)


def test_new_due_date_extends_from_today_when_due_date_passed_or_missing():
    assert payments.compute_new_due_date("2025-12-01", 1, TODAY) == date(2026, 2, 10)
    assert payments.compute_new_due_date("2026-01-10", 2, TODAY) == date(2026, 3, 10)
    assert payments.compute_new_due_date(None, 3, TODAY) == date(2026, 4, 10)


def test_new_due_date_clamps_to_month_end():
    assert payments.compute_new_due_date("2026-01-31", 1, TODAY) == date(2026, 2, 28)


def test_default_amount_follows_plan():
    assert payments.default_amount({"plan": "standard"}) == 1000.0
    assert payments.default_amount({}) == 800.0
    assert payments.default_amount({"plan": "legacy"}) == 800.0


def test_validate_payment():
    assert payments.validate_payment("800", "cash", 1) == []
    assert payments.validate_payment(0, "cash", 1) == ["Amount must be greater than 0."]
    assert payments.validate_payment("abc", "cash", 1) == ["Amount must be numeric."]
    assert payments.validate_payment(800, "bitcoin", 1) == ["Unknown payment method."]
    assert payments.validate_payment(800, "cash", 4) == ["Extension must be 1, 2, 3, 6 or 12 months."]


def test_record_payment_marks_client_paid(make_client):
    client = make_client(plan="standard", status="overdue", due_date="2026-01-20")

    payment = payments.record_payment(client, 1000, "gcash", " March ", 1, today=TODAY)

    assert payment["amount"] == 1000.0
    assert payment["payment_method"] == "gcash"
    assert payment["notes"] == "March"
    assert payment["new_due_date"] == "2026-02-20"
    assert payment["extend_months"] == 1
    assert payment["first_name"] == "Juan"

    stored = db.get_document("clients", client["id"])
    assert stored["status"] == "paid"
    assert stored["is_connected"] is True
    assert stored["due_date"] == "2026-02-20"
    assert stored["last_payment_id"] == payment["id"]


def test_record_payment_invalid_writes_nothing(make_client):
    client = make_client()

    with pytest.raises(ValidationError):
        payments.record_payment(client, -5, "cash", "", 1, today=TODAY)

    assert db.get_documents("payments") == []
    assert db.get_document("clients", client["id"])["status"] == "pending"


def test_record_payment_for_deleted_client_leaves_payment_behind(make_client):
    client = make_client()
    db.delete_document("clients", client["id"])

    with pytest.raises(NotFoundError):
        payments.record_payment(client, 800, "cash", "", 1, today=TODAY)

    assert len(db.get_documents("payments")) == 1


def test_fetch_payments_newest_first():
    db.add_document("payments", {"amount": 1, "created_at": "2026-01-01T00:00:00+00:00"})
    db.add_document("payments", {"amount": 3, "created_at": "2026-03-01T00:00:00+00:00"})
    db.add_document("payments", {"amount": 2, "created_at": "2026-02-01T00:00:00+00:00"})

    assert [p["amount"] for p in payments.fetch_payments()] == [3, 2, 1]


SAMPLE = [
    {"first_name": "Juan", "last_name": "Cruz", "payment_method": "cash", "notes": "", "status": "completed", "amount": 800},
    {"first_name": "Maria", "last_name": "Santos", "payment_method": "gcash", "notes": "advance", "status": "pending", "amount": 1500},
    {"first_name": "Pedro", "last_name": None, "payment_method": "bank_transfer", "notes": None, "status": "failed", "amount": 1000},
]


def test_filter_payments():
    assert len(payments.filter_payments(SAMPLE)) == 3
    assert [p["first_name"] for p in payments.filter_payments(SAMPLE, search="SANTOS")] == ["Maria"]
    assert [p["first_name"] for p in payments.filter_payments(SAMPLE, search="advance")] == ["Maria"]
    assert [p["first_name"] for p in payments.filter_payments(SAMPLE, search="bank")] == ["Pedro"]
    assert [p["first_name"] for p in payments.filter_payments(SAMPLE, status="completed")] == ["Juan"]
    assert [p["first_name"] for p in payments.filter_payments(SAMPLE, method="gcash")] == ["Maria"]
    assert payments.filter_payments(SAMPLE, search="juan", method="gcash") == []


def test_payment_summary():
    assert payments.payment_summary(SAMPLE) == {
        "total_amount": 3300.0,
        "count": 3,
        "completed": 1,
        "pending": 1,
    }


def test_payments_to_csv_bytes_quotes_every_field():
    text = payments.payments_to_csv_bytes(SAMPLE[:1]).decode("utf-8")

    header, row = text.strip().splitlines()
    assert header == '"Date","Client Name","Amount","Method","Status","Notes"'
    assert row == '"N/A","Juan Cruz","800.0","Cash","completed",""'


def test_method_label():
    assert payments.method_label("bank_transfer") == "Bank Transfer"
    assert payments.method_label("crypto") == "crypto"


def test_payment_table_rows_show_status():
    rows = payments.payment_table_rows(SAMPLE + [{"first_name": "Ana", "status": "refunded"}])

    assert [r["Status"] for r in rows] == ["Completed", "Pending", "Failed", "Pending"]
    assert rows[0]["Client"] == "Juan Cruz"
    assert rows[0]["Method"] == "Cash"
    assert rows[3]["Date"] == "N/A"
    assert rows[3]["New Due Date"] == "N/A"
