"""
reports.py
Dashboard statistics, monthly revenue, client distributions and the charts built on them.
"""

from __future__ import annotations

from datetime import date, timedelta

import altair as alt
import pandas as pd

import config
import db
import utils
from models import PLAN_DETAILS, STATUS_COLORS

TIME_RANGES = {"6months": 6, "12months": 12}


def dashboard_stats() -> dict:
    clients = db.get_documents("clients")
    connected = db.query_documents("clients", [("is_connected", "==", True)])
    payments = db.get_documents("payments")
    return {
        "total_clients": len(clients),
        "active_clients": len(connected),
        "total_payments": sum(float(p.get("amount") or 0) for p in payments),
        "payment_count": len(payments),
    }


def revenue_by_month(payments: list[dict], months: int = 6, today: date | None = None) -> pd.DataFrame:
    """
    Revenue and payment count per calendar month for the last `months` months
    (current month included). Months without payments are present with zeros.
    """
    today = today or date.today()
    first = today.replace(day=1)

    buckets: dict[str, dict] = {}
    for i in range(months - 1, -1, -1):
        start = utils.add_months(first, -i)
        buckets[start.strftime("%Y-%m")] = {
            "key": start.strftime("%Y-%m"),
            "month": start.strftime("%b %Y"),
            "revenue": 0.0,
            "payments": 0,
        }

    for p in payments:
        paid_on = utils.coerce_date(p.get("created_at"))
        if paid_on is None:
            continue
        bucket = buckets.get(paid_on.strftime("%Y-%m"))
        if bucket:
            bucket["revenue"] += float(p.get("amount") or 0)
            bucket["payments"] += 1

    return pd.DataFrame(list(buckets.values()), columns=["key", "month", "revenue", "payments"])


def client_status_distribution(clients: list[dict]) -> pd.DataFrame:
    counts: dict[str, int] = {}
    for c in clients:
        status = c.get("status") or "pending"
        counts[status] = counts.get(status, 0) + 1

    rows = [
        {"name": status.capitalize(), "value": n, "color": STATUS_COLORS.get(status, STATUS_COLORS["pending"])}
        for status, n in counts.items()
    ]
    return pd.DataFrame(rows, columns=["name", "value", "color"])


def plan_distribution(clients: list[dict]) -> pd.DataFrame:
    counts: dict[str, int] = {}
    for c in clients:
        plan = c.get("plan") or "basic"
        counts[plan] = counts.get(plan, 0) + 1

    rows = []
    for key, n in counts.items():
        plan = PLAN_DETAILS.get(key)
        label = f"{plan.name} ({plan.speed} Mbps)" if plan else key
        rows.append({"plan": label, "clients": n})
    return pd.DataFrame(rows, columns=["plan", "clients"])


def due_soon(clients: list[dict], days: int = config.REMINDER_DAYS, today: date | None = None) -> list[dict]:
    """Unarchived clients whose due date falls within the next `days` days."""
    today = today or date.today()
    until = today + timedelta(days=days)
    result = []
    for c in clients:
        due = utils.coerce_date(c.get("due_date"))
        if not c.get("archived") and due is not None and today <= due <= until:
            result.append(c)
    return sorted(result, key=lambda c: c["due_date"])


def revenue_report_csv_bytes(revenue: pd.DataFrame) -> bytes:
    df = revenue[["month", "revenue", "payments"]].rename(
        columns={
            "month": "Month/Year",
            "revenue": f"Revenue ({config.CURRENCY})",
            "payments": "Number of Payments",
        }
    )
    return df.to_csv(index=False).encode("utf-8")


# ---------- Charts ----------

def revenue_chart(revenue: pd.DataFrame) -> alt.LayerChart:
    base = alt.Chart(revenue).encode(
        x=alt.X("month:N", title="Month", sort=list(revenue["month"])),
    )
    revenue_line = base.mark_line(point=True, color="#10B981").encode(
        y=alt.Y("revenue:Q", title=f"Revenue ({config.CURRENCY})"),
        tooltip=[
            alt.Tooltip("month:N", title="Month"),
            alt.Tooltip("revenue:Q", title="Revenue", format=",.0f"),
            alt.Tooltip("payments:Q", title="Payments"),
        ],
    )
    count_line = base.mark_line(point=True, color="#3B82F6", strokeDash=[4, 2]).encode(
        y=alt.Y("payments:Q", title="Number of Payments"),
    )
    return alt.layer(revenue_line, count_line).resolve_scale(y="independent").properties(height=300)


def status_chart(distribution: pd.DataFrame) -> alt.Chart:
    return (
        alt.Chart(distribution)
        .mark_arc(outerRadius=80)
        .encode(
            theta=alt.Theta("value:Q"),
            color=alt.Color(
                "name:N",
                scale=alt.Scale(domain=list(distribution["name"]), range=list(distribution["color"])),
                legend=alt.Legend(title="Status"),
            ),
            tooltip=["name:N", "value:Q"],
        )
        .properties(height=240)
    )


def plan_chart(distribution: pd.DataFrame) -> alt.Chart:
    return (
        alt.Chart(distribution)
        .mark_bar(color="#10B981")
        .encode(
            x=alt.X("plan:N", title="Plan"),
            y=alt.Y("clients:Q", title="Clients"),
            tooltip=["plan:N", "clients:Q"],
        )
        .properties(height=240)
    )
