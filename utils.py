"""
utils.py
Dates, pagination, display formatting, sample data.
"""

from __future__ import annotations

import math
from datetime import date, datetime, timedelta, timezone

import config
import db


def today_iso() -> str:
    return date.today().isoformat()


def parse_iso(d: str) -> date:
    return date.fromisoformat(d)


def coerce_date(value) -> date | None:
    """
    Best-effort conversion of a stored date/timestamp to a date.
    Returns None for empty or unparseable values.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def add_months(start: date, months: int) -> date:
    """
    Add months while keeping day in valid range (e.g., Jan 31 + 1 month => Feb 28/29).
    """
    y = start.year + (start.month - 1 + months) // 12
    m = (start.month - 1 + months) % 12 + 1
    # last day of target month
    if m == 12:
        next_month = date(y + 1, 1, 1)
    else:
        next_month = date(y, m + 1, 1)
    last_day = next_month - timedelta(days=1)
    day = min(start.day, last_day.day)
    return date(y, m, day)


def paginate(items: list, page: int, per_page: int) -> tuple[list, int, int]:
    """
    Slice one page out of `items`.
    Returns (page_items, page, total_pages); page is clamped into 1..total_pages.
    """
    total_pages = max(1, math.ceil(len(items) / per_page))
    page = min(max(1, page), total_pages)
    start = (page - 1) * per_page
    return items[start:start + per_page], page, total_pages


def page_window(current: int, total_pages: int) -> list[int]:
    # first, previous, current, next, last
    if total_pages <= 1:
        return []
    pages = {current}
    if current > 1:
        pages.add(current - 1)
    if current > 2:
        pages.add(1)
    if current < total_pages:
        pages.add(current + 1)
    if current < total_pages - 1:
        pages.add(total_pages)
    return sorted(pages)


def format_currency(amount) -> str:
    return f"{config.CURRENCY}{float(amount or 0):,.2f}"


def format_date(value) -> str:
    d = coerce_date(value)
    if d is None:
        return "N/A"
    return d.strftime("%b %d, %Y")


def format_timestamp(value) -> str:
    if not value:
        return "N/A"
    try:
        ts = datetime.fromisoformat(str(value))
    except ValueError:
        return format_date(value)
    return ts.strftime("%b %d, %Y %I:%M %p")


def insert_sample_data() -> None:
    """
    Insert 3 clients and a few payments (safe to run multiple times: adds new rows each time).
    """
    today = date.today()

    clients = [
        {
            "first_name": "Juan", "last_name": "Dela Cruz", "email": "juan@example.com",
            "phone": "09171234567", "address": "12 Mabini St.", "plan": "standard",
            "status": "paid", "is_connected": True, "archived": False,
            "plan_start_date": (today - timedelta(days=40)).isoformat(),
            "due_date": (today + timedelta(days=5)).isoformat(),
        },
        {
            "first_name": "Maria", "last_name": "Santos", "email": "maria@example.com",
            "phone": "09181234567", "address": "45 Rizal Ave.", "plan": "premium",
            "status": "pending", "is_connected": True, "archived": False,
            "plan_start_date": today.isoformat(),
            "due_date": (today + timedelta(days=30)).isoformat(),
        },
        {
            "first_name": "Pedro", "last_name": "Reyes", "email": "",
            "phone": "09191234567", "address": "7 Luna St.", "plan": "basic",
            "status": "paid", "is_connected": False, "archived": False,
            "plan_start_date": (today - timedelta(days=90)).isoformat(),
            "due_date": (today - timedelta(days=3)).isoformat(),
        },
    ]

    ids = [db.add_document("clients", c) for c in clients]

    payments = [
        (ids[0], clients[0], 1000.0, "gcash", today - timedelta(days=25), "Sample payment"),
        (ids[2], clients[2], 800.0, "cash", today - timedelta(days=33), "Old payment"),
        (ids[2], clients[2], 800.0, "bank_transfer", today - timedelta(days=63), ""),
    ]
    for client_id, client, amount, method, paid_on, notes in payments:
        db.add_document(
            "payments",
            {
                "client_id": client_id,
                "first_name": client["first_name"],
                "last_name": client["last_name"],
                "amount": amount,
                "payment_method": method,
                "notes": notes,
                "extend_months": 1,
                "new_due_date": add_months(paid_on, 1).isoformat(),
                "status": "completed",
                "created_at": datetime.combine(paid_on, datetime.min.time(), timezone.utc).isoformat(timespec="seconds"),
            },
        )
