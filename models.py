"""
models.py
Lightweight domain constants (plans, statuses, payment methods).
"""

from __future__ import annotations
from dataclasses import dataclass

import config


@dataclass(frozen=True)
class Plan:
    key: str
    name: str
    price: float
    speed: int  # Mbps

    @property
    def label(self) -> str:
        return f"{self.name} - {config.CURRENCY}{self.price:,.0f} ({self.speed} Mbps)"


PLAN_DETAILS = {
    "basic": Plan("basic", "Basic", 800, 15),
    "standard": Plan("standard", "Standard", 1000, 20),
    "premium": Plan("premium", "Premium", 1500, 30),
    "ultimate": Plan("ultimate", "Ultimate", 2000, 50),
}

UNKNOWN_PLAN = Plan("unknown", "Unknown", 0, 0)
DEFAULT_PLAN = "basic"

# Used when a client's plan key is not in PLAN_DETAILS
FALLBACK_PAYMENT_AMOUNT = 800.0


def get_plan(key: str | None) -> Plan:
    return PLAN_DETAILS.get(key or "", UNKNOWN_PLAN)


CLIENT_STATUSES = ("pending", "paid", "overdue")
STATUS_PRIORITY = {"overdue": 0, "pending": 1, "paid": 2}
STATUS_COLORS = {"paid": "#10B981", "overdue": "#EF4444", "pending": "#F59E0B"}

PAYMENT_STATUSES = ("completed", "pending", "failed")

PAYMENT_METHODS = {
    "cash": "Cash",
    "gcash": "GCash",
    "bank_transfer": "Bank Transfer",
    "paymaya": "PayMaya",
    "check": "Check",
    "other": "Other",
}

# Months a payment can push the due date forward
EXTEND_MONTHS = (1, 2, 3, 6, 12)
