"""
auth.py
Staff accounts: bcrypt hashing, register, login, password and display-name changes.

This avoids passlib's bcrypt backend auto-detection issues on some Python 3.13 Windows setups.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid

import bcrypt

import config
import db
from errors import AuthenticationError

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def _to_bcrypt_secret(password: str) -> bytes:
    """
    bcrypt only uses the first 72 BYTES of the password.
    We truncate to 72 bytes to avoid ValueError and to make behavior explicit.
    """
    pw = password.encode("utf-8")
    if len(pw) > 72:
        pw = pw[:72]
    return pw


def hash_password(password: str) -> str:
    """
    Returns a bcrypt hash as a UTF-8 string (stored in SQLite).
    """
    secret = _to_bcrypt_secret(password)
    salt = bcrypt.gensalt(rounds=config.BCRYPT_ROUNDS)
    hashed = bcrypt.hashpw(secret, salt)
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against stored bcrypt hash.
    """
    secret = _to_bcrypt_secret(password)
    stored = password_hash.encode("utf-8")
    return bcrypt.checkpw(secret, stored)


def _check_password_rules(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise AuthenticationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")


def get_account_by_email(email: str):
    return db.fetch_one("SELECT * FROM accounts WHERE email = ?", (email.strip(),))


def get_account(uid: str):
    return db.fetch_one("SELECT * FROM accounts WHERE id = ?", (uid,))


def register_user(email: str, password: str, display_name: str = "") -> str:
    email = email.strip()
    if "@" not in email:
        raise AuthenticationError("Email address is not valid.")
    _check_password_rules(password)

    uid = uuid.uuid4().hex
    try:
        db.execute(
            "INSERT INTO accounts(id, email, password_hash, display_name, created_at) VALUES(?,?,?,?,?)",
            (uid, email, hash_password(password), display_name.strip(), db.now_iso()),
        )
    except sqlite3.IntegrityError:
        raise AuthenticationError("Email address is already in use.") from None
    logger.info("Registered account %s", email)
    return uid


def login(email: str, password: str) -> dict:
    """Return the account (without its hash) or raise AuthenticationError."""
    account = get_account_by_email(email)
    if not account or not verify_password(password, account["password_hash"]):
        logger.warning("Failed login for %s", email.strip())
        raise AuthenticationError("Invalid email or password.")
    user = {k: account[k] for k in ("id", "email", "display_name")}
    db.get_user_profile(user["id"])
    return user


def change_password(uid: str, new_password: str) -> None:
    _check_password_rules(new_password)
    db.execute(
        "UPDATE accounts SET password_hash = ? WHERE id = ?",
        (hash_password(new_password), uid),
    )
    db.clear_force_password_change()
    logger.info("Password changed for account %s", uid)


def update_account(
    uid: str,
    display_name: str,
    current_password: str = "",
    new_password: str = "",
    confirm_password: str = "",
) -> None:
    """
    Save the display name and, when a new password is given, change it after
    checking the confirmation and the current password.
    """
    account = get_account(uid)
    if not account:
        raise AuthenticationError("Account not found.")

    if new_password:
        if new_password != confirm_password:
            raise AuthenticationError("New passwords do not match.")
        if not verify_password(current_password, account["password_hash"]):
            raise AuthenticationError("Current password is incorrect.")
        change_password(uid, new_password)

    db.execute("UPDATE accounts SET display_name = ? WHERE id = ?", (display_name.strip(), uid))


def ensure_default_admin() -> None:
    """
    Seed the configured admin account when no account exists and force a
    password change on its first login.
    """
    if db.fetch_one("SELECT id FROM accounts LIMIT 1"):
        if db.get_setting("force_password_change") is None:
            db.clear_force_password_change()
        return
    register_user(config.ADMIN_EMAIL, config.ADMIN_PASSWORD, "Administrator")
    db.set_force_password_change()
