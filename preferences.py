"""
preferences.py
Company details and system switches, kept in the app_settings table.
"""

from __future__ import annotations

import config
import db

COMPANY_DEFAULTS = {
    "company_name": config.COMPANY_NAME,
    "address": "123 Main Street, City",
    "phone": "+63 123 456 7890",
    "email": "info@incconnect.com",
    "website": "www.incconnect.com",
}

SYSTEM_DEFAULTS = {
    "auto_disconnect": False,
    "payment_reminders": True,
    "dark_mode": False,
    "data_backup": False,
}


def get_company_info() -> dict:
    return {k: db.get_setting(f"company.{k}", v) for k, v in COMPANY_DEFAULTS.items()}


def save_company_info(info: dict) -> None:
    for key in COMPANY_DEFAULTS:
        if key in info:
            db.set_setting(f"company.{key}", (info[key] or "").strip())


def get_system_settings() -> dict:
    return {
        k: db.get_setting(f"system.{k}", "1" if v else "0") == "1"
        for k, v in SYSTEM_DEFAULTS.items()
    }


def save_system_settings(settings: dict) -> None:
    for key in SYSTEM_DEFAULTS:
        if key in settings:
            db.set_setting(f"system.{key}", "1" if settings[key] else "0")
