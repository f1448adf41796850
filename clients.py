"""
clients.py
Subscriber lifecycle: form defaults/validation, create/edit, archive/restore,
listing with the overdue sweep, sorting and per-list stats.
"""

from __future__ import annotations

import logging
import re
from datetime import date, timedelta

import pandas as pd

import db
import preferences
import utils
from errors import NotFoundError, ValidationError
from models import CLIENT_STATUSES, DEFAULT_PLAN, PLAN_DETAILS, STATUS_PRIORITY, get_plan

logger = logging.getLogger(__name__)

PHONE_DIGITS = 11
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

SORT_OPTIONS = {
    "due_date": "Due Date",
    "status": "Status",
    "plan": "Plan",
    "last_name": "Name",
}

FORM_FIELDS = (
    "first_name", "last_name", "email", "phone", "address", "plan",
    "status", "is_connected", "due_date", "plan_start_date",
)


def new_client_defaults(today: date | None = None) -> dict:
    today = today or date.today()
    return {
        "first_name": "",
        "last_name": "",
        "email": "",
        "phone": "",
        "address": "",
        "plan": DEFAULT_PLAN,
        "status": "pending",
        "is_connected": False,
        "archived": False,
        "due_date": (today + timedelta(days=30)).isoformat(),
        "plan_start_date": today.isoformat(),
    }


def normalize_phone(raw: str) -> str:
    """Keep digits only."""
    return re.sub(r"\D", "", raw or "")


def validate_client(data: dict) -> list[str]:
    errors: list[str] = []
    if not (data.get("first_name") or "").strip():
        errors.append("First name is required.")
    if not (data.get("last_name") or "").strip():
        errors.append("Last name is required.")
    phone = data.get("phone") or ""
    if not (phone.isdigit() and len(phone) == PHONE_DIGITS):
        errors.append("Please enter a valid 11-digit Philippine mobile number.")
    email = (data.get("email") or "").strip()
    if email and not EMAIL_RE.match(email):
        errors.append("Email address is not valid.")
    if data.get("plan") not in PLAN_DETAILS:
        errors.append("Plan must be one of: " + ", ".join(PLAN_DETAILS) + ".")
    if data.get("status", "pending") not in CLIENT_STATUSES:
        errors.append("Status must be one of: " + ", ".join(CLIENT_STATUSES) + ".")
    for field, label in (("plan_start_date", "Plan start date"), ("due_date", "Due date")):
        try:
            utils.parse_iso(str(data.get(field) or ""))
        except ValueError:
            errors.append(f"{label} must be a valid ISO date (YYYY-MM-DD).")
    return errors


def _clean(data: dict) -> dict:
    cleaned = {k: data[k] for k in FORM_FIELDS if k in data}
    for key in ("first_name", "last_name", "email", "address"):
        if key in cleaned:
            cleaned[key] = (cleaned[key] or "").strip()
    if "phone" in cleaned:
        cleaned["phone"] = normalize_phone(cleaned["phone"])
    if "is_connected" in cleaned:
        cleaned["is_connected"] = bool(cleaned["is_connected"])
    return cleaned


def create_client(data: dict) -> str:
    client = {**new_client_defaults(), **_clean(data)}
    errors = validate_client(client)
    if errors:
        raise ValidationError(errors)
    # New clients never start archived
    client["archived"] = False
    return db.add_document("clients", client)


def update_client(client_id: str, data: dict) -> None:
    existing = db.get_document("clients", client_id)
    if existing is None:
        raise NotFoundError(f"No client with id {client_id}")
    changes = _clean(data)
    errors = validate_client({**existing, **changes})
    if errors:
        raise ValidationError(errors)
    db.update_document("clients", client_id, changes)


def archive_client(client_id: str) -> None:
    db.update_document("clients", client_id, {"archived": True})


def restore_client(client_id: str) -> None:
    db.update_document("clients", client_id, {"archived": False})


def sweep_overdue(clients: list[dict], today: date | None = None) -> list[dict]:
    """
    Rewrite status to 'overdue' for every client whose due date has passed.

    One update per client with no locking; concurrent sweeps simply overwrite
    each other. Returns the list with updated copies in place of swept clients.
    """
    today = today or date.today()
    auto_disconnect = preferences.get_system_settings()["auto_disconnect"]

    result = []
    for client in clients:
        due = utils.coerce_date(client.get("due_date"))
        if client.get("due_date") and due is None:
            logger.warning("Client %s has an unreadable due date %r", client.get("id"), client.get("due_date"))
        if due is not None and due < today and client.get("status") != "overdue":
            changes = {"status": "overdue"}
            if auto_disconnect:
                changes["is_connected"] = False
            db.update_document("clients", client["id"], changes)
            logger.warning("Client %s marked overdue (due %s)", client["id"], due.isoformat())
            client = {**client, **changes}
        result.append(client)
    return result


def fetch_clients(sort_by: str = "due_date", today: date | None = None) -> tuple[list[dict], list[dict]]:
    """
    Load every client, split active/archived in memory, sweep overdue
    statuses on the active ones and sort both lists.
    """
    all_clients = db.get_documents("clients")
    active = [c for c in all_clients if not c.get("archived")]
    archived = [c for c in all_clients if c.get("archived")]

    active = sweep_overdue(active, today=today)
    return sort_clients(active, sort_by), sort_clients(archived, "last_name")


def _due_key(client: dict) -> date:
    return utils.coerce_date(client.get("due_date")) or date.max


def sort_clients(clients: list[dict], criteria: str) -> list[dict]:
    if criteria == "due_date":
        return sorted(clients, key=_due_key)
    if criteria == "status":
        return sorted(clients, key=lambda c: STATUS_PRIORITY.get(c.get("status"), 3))
    if criteria == "last_name":
        return sorted(clients, key=lambda c: (c.get("last_name") or "").casefold())
    if criteria == "plan":
        return sorted(clients, key=lambda c: get_plan(c.get("plan")).price, reverse=True)
    return list(clients)


def client_stats(clients: list[dict]) -> dict:
    return {
        "total": len(clients),
        "connected": sum(1 for c in clients if c.get("is_connected")),
        "overdue": sum(1 for c in clients if c.get("status") == "overdue"),
    }


def days_until_due(due_date, today: date | None = None) -> int | None:
    due = utils.coerce_date(due_date)
    if due is None:
        return None
    return (due - (today or date.today())).days


def due_label(due_date, today: date | None = None) -> str:
    days = days_until_due(due_date, today)
    if days is None:
        return ""
    if days < 0:
        return f"{-days} day(s) overdue"
    if days == 0:
        return "Due today"
    return f"Due in {days} day(s)"


def plan_display(plan_key: str | None) -> str:
    plan = get_plan(plan_key)
    return f"{utils.format_currency(plan.price)} ({plan.speed} Mbps)"


def full_name(doc: dict) -> str:
    return f"{doc.get('first_name') or ''} {doc.get('last_name') or ''}".strip()


def clients_to_frame(clients: list[dict], today: date | None = None) -> pd.DataFrame:
    columns = ["Name", "Phone", "Email", "Plan", "Status", "Connection", "Due Date", "Due"]
    rows = [
        {
            "Name": full_name(c),
            "Phone": c.get("phone") or "",
            "Email": c.get("email") or "",
            "Plan": plan_display(c.get("plan")),
            "Status": (c.get("status") or "pending").capitalize(),
            "Connection": "Connected" if c.get("is_connected") else "Disconnected",
            "Due Date": utils.format_date(c.get("due_date")),
            "Due": due_label(c.get("due_date"), today),
        }
        for c in clients
    ]
    return pd.DataFrame(rows, columns=columns)


def clients_to_csv_bytes(clients: list[dict]) -> bytes:
    df = clients_to_frame(clients)
    return df.to_csv(index=False).encode("utf-8")
