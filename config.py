"""
config.py
Environment-driven settings (a local .env file is honoured).
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

DB_FILE = Path(os.getenv("ISP_DB_FILE", str(Path(__file__).with_name("isp.db"))))

ADMIN_EMAIL = os.getenv("ISP_ADMIN_EMAIL", "admin@incconnect.local")
ADMIN_PASSWORD = os.getenv("ISP_ADMIN_PASSWORD", "admin123")

COMPANY_NAME = os.getenv("ISP_COMPANY_NAME", "IncConnect Solution Corp")
CURRENCY = os.getenv("ISP_CURRENCY", "₱")

BCRYPT_ROUNDS = int(os.getenv("ISP_BCRYPT_ROUNDS", "12"))
LOG_LEVEL = os.getenv("ISP_LOG_LEVEL", "INFO").upper()

CLIENTS_PER_PAGE = 5
PAYMENTS_PER_PAGE = 10
DASHBOARD_PAYMENTS_PER_PAGE = 5

# Days ahead of the due date that a client shows up in payment reminders
REMINDER_DAYS = 7


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
