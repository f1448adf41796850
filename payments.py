"""
payments.py
Payment recording (with due-date extension), history listing, filtering and export.
"""

from __future__ import annotations

import csv
import logging
from datetime import date

import pandas as pd

import db
import utils
from errors import ValidationError
from models import EXTEND_MONTHS, FALLBACK_PAYMENT_AMOUNT, PAYMENT_METHODS, PAYMENT_STATUSES, PLAN_DETAILS

logger = logging.getLogger(__name__)


def method_label(method: str | None) -> str:
    return PAYMENT_METHODS.get(method or "", method or "")


def default_amount(client: dict) -> float:
    plan = PLAN_DETAILS.get(client.get("plan") or "basic")
    return float(plan.price) if plan else FALLBACK_PAYMENT_AMOUNT


def compute_new_due_date(current_due, extend_months: int, today: date | None = None) -> date:
    """
    Extend from the current due date when it is still in the future,
    otherwise from today.
    """
    today = today or date.today()
    base = today
    current = utils.coerce_date(current_due)
    if current is not None and current > today:
        base = current
    return utils.add_months(base, int(extend_months))


def validate_payment(amount, method: str, extend_months) -> list[str]:
    errors: list[str] = []
    try:
        if float(amount) <= 0:
            errors.append("Amount must be greater than 0.")
    except (TypeError, ValueError):
        errors.append("Amount must be numeric.")
    if method not in PAYMENT_METHODS:
        errors.append("Unknown payment method.")
    try:
        if int(extend_months) not in EXTEND_MONTHS:
            errors.append("Extension must be 1, 2, 3, 6 or 12 months.")
    except (TypeError, ValueError):
        errors.append("Extension must be a whole number of months.")
    return errors


def record_payment(
    client: dict,
    amount,
    method: str = "cash",
    notes: str = "",
    extend_months: int = 1,
    today: date | None = None,
) -> dict:
    errors = validate_payment(amount, method, extend_months)
    if errors:
        raise ValidationError(errors)

    new_due = compute_new_due_date(client.get("due_date"), int(extend_months), today=today)
    payment = db.create_payment(
        {
            "client_id": client["id"],
            "amount": float(amount),
            "payment_method": method,
            "notes": (notes or "").strip(),
            "extend_months": int(extend_months),
            "new_due_date": new_due.isoformat(),
        }
    )
    logger.info(
        "Recorded payment %s of %.2f for client %s, due date now %s",
        payment["id"], payment["amount"], client["id"], new_due.isoformat(),
    )
    return payment


def fetch_payments() -> list[dict]:
    """All payments, newest first. Missing timestamps sort last."""
    payments = db.get_documents("payments")
    return sorted(payments, key=lambda p: p.get("created_at") or "", reverse=True)


def filter_payments(payments: list[dict], search: str = "", status: str = "all", method: str = "all") -> list[dict]:
    filtered = payments
    term = search.strip().lower()
    if term:
        filtered = [
            p for p in filtered
            if any(term in (p.get(f) or "").lower() for f in ("first_name", "last_name", "payment_method", "notes"))
        ]
    if status != "all":
        filtered = [p for p in filtered if p.get("status") == status]
    if method != "all":
        filtered = [p for p in filtered if p.get("payment_method") == method]
    return filtered


def payment_summary(payments: list[dict]) -> dict:
    return {
        "total_amount": sum(float(p.get("amount") or 0) for p in payments),
        "count": len(payments),
        "completed": sum(1 for p in payments if p.get("status") == "completed"),
        "pending": sum(1 for p in payments if p.get("status") == "pending"),
    }


def payment_table_rows(payments: list[dict]) -> list[dict]:
    return [
        {
            "Client": f"{p.get('first_name') or ''} {p.get('last_name') or ''}".strip(),
            "Amount": utils.format_currency(p.get("amount")),
            "Method": method_label(p.get("payment_method")),
            "Date": utils.format_timestamp(p.get("created_at")),
            "Status": (p.get("status") if p.get("status") in PAYMENT_STATUSES else "pending").capitalize(),
            "New Due Date": utils.format_date(p.get("new_due_date")),
            "Notes": p.get("notes") or "",
        }
        for p in payments
    ]


def payments_to_frame(payments: list[dict]) -> pd.DataFrame:
    columns = ["Date", "Client Name", "Amount", "Method", "Status", "Notes"]
    rows = [
        {
            "Date": utils.format_date(p.get("created_at")),
            "Client Name": f"{p.get('first_name') or ''} {p.get('last_name') or ''}".strip(),
            "Amount": float(p.get("amount") or 0),
            "Method": method_label(p.get("payment_method")),
            "Status": p.get("status") if p.get("status") in PAYMENT_STATUSES else "pending",
            "Notes": p.get("notes") or "",
        }
        for p in payments
    ]
    return pd.DataFrame(rows, columns=columns)


def payments_to_csv_bytes(payments: list[dict]) -> bytes:
    df = payments_to_frame(payments)
    return df.to_csv(index=False, quoting=csv.QUOTE_ALL).encode("utf-8")
