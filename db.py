"""
db.py
SQLite helpers + initialization, plus document-style access to the
clients/payments collections and the lazily mirrored user profiles.
"""

from __future__ import annotations

import logging
import sqlite3
import tempfile
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

import config
from errors import NotFoundError

logger = logging.getLogger(__name__)

DB_FILE = config.DB_FILE

COLLECTIONS: dict[str, tuple[str, ...]] = {
    "clients": (
        "id", "first_name", "last_name", "email", "phone", "address", "plan",
        "status", "is_connected", "archived", "due_date", "plan_start_date",
        "last_payment_date", "last_payment_amount", "last_payment_id",
        "created_at", "updated_at",
    ),
    "payments": (
        "id", "client_id", "first_name", "last_name", "amount", "payment_method",
        "notes", "extend_months", "new_due_date", "status", "created_at", "updated_at",
    ),
    "users": (
        "id", "first_name", "last_name", "email", "phone", "company", "position",
        "role", "created_at", "updated_at",
    ),
}

BOOL_FIELDS = {"is_connected", "archived"}

OPERATORS = {"==": "=", "!=": "!=", "<": "<", "<=": "<=", ">": ">", ">=": ">="}


@contextmanager
def get_conn():
    conn = sqlite3.connect(DB_FILE, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


def execute(sql: str, params: tuple = ()) -> int:
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.lastrowid


def fetch_one(sql: str, params: tuple = ()):
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.fetchone()


def fetch_all(sql: str, params: tuple = ()) -> list[sqlite3.Row]:
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.fetchall()


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _create_tables() -> None:
    # Subscribers. No CHECK constraints: status/plan values are app-level convention.
    execute(
        """
        CREATE TABLE IF NOT EXISTS clients (
            id TEXT PRIMARY KEY,
            first_name TEXT,
            last_name TEXT,
            email TEXT,
            phone TEXT,
            address TEXT,
            plan TEXT,
            status TEXT,
            is_connected INTEGER NOT NULL DEFAULT 0,
            archived INTEGER NOT NULL DEFAULT 0,
            due_date TEXT,
            plan_start_date TEXT,
            last_payment_date TEXT,
            last_payment_amount REAL,
            last_payment_id TEXT,
            created_at TEXT,
            updated_at TEXT
        )
        """
    )

    # client_id is a plain reference, not a foreign key
    execute(
        """
        CREATE TABLE IF NOT EXISTS payments (
            id TEXT PRIMARY KEY,
            client_id TEXT,
            first_name TEXT,
            last_name TEXT,
            amount REAL,
            payment_method TEXT,
            notes TEXT,
            extend_months INTEGER,
            new_due_date TEXT,
            status TEXT,
            created_at TEXT,
            updated_at TEXT
        )
        """
    )

    execute(
        """
        CREATE TABLE IF NOT EXISTS accounts (
            id TEXT PRIMARY KEY,
            email TEXT NOT NULL UNIQUE COLLATE NOCASE,
            password_hash TEXT NOT NULL,
            display_name TEXT,
            created_at TEXT NOT NULL
        )
        """
    )

    execute(
        """
        CREATE TABLE IF NOT EXISTS users (
            id TEXT PRIMARY KEY,
            first_name TEXT,
            last_name TEXT,
            email TEXT,
            phone TEXT,
            company TEXT,
            position TEXT,
            role TEXT,
            created_at TEXT,
            updated_at TEXT
        )
        """
    )

    execute(
        """
        CREATE TABLE IF NOT EXISTS app_settings (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        )
        """
    )


def init_db() -> None:
    """Create all tables (idempotent)."""
    _create_tables()


# ---------- Documents ----------

def _columns(collection: str) -> tuple[str, ...]:
    try:
        return COLLECTIONS[collection]
    except KeyError:
        raise ValueError(f"Unknown collection: {collection}") from None


def _check_fields(collection: str, fields) -> None:
    allowed = _columns(collection)
    unknown = [f for f in fields if f not in allowed]
    if unknown:
        raise ValueError(f"Unknown field(s) for {collection}: {', '.join(unknown)}")


def _to_doc(row: sqlite3.Row) -> dict:
    doc = dict(row)
    for key in BOOL_FIELDS & doc.keys():
        doc[key] = bool(doc[key])
    return doc


def add_document(collection: str, data: dict) -> str:
    """Insert a document and return its id. `created_at` is stamped unless given."""
    doc = dict(data)
    doc.setdefault("id", uuid.uuid4().hex)
    doc.setdefault("created_at", now_iso())
    _check_fields(collection, doc)

    cols = list(doc)
    placeholders = ",".join("?" for _ in cols)
    execute(
        f"INSERT INTO {collection}({','.join(cols)}) VALUES({placeholders})",
        tuple(doc[c] for c in cols),
    )
    logger.info("Added %s document %s", collection, doc["id"])
    return doc["id"]


def get_documents(collection: str) -> list[dict]:
    _columns(collection)
    return [_to_doc(r) for r in fetch_all(f"SELECT * FROM {collection}")]


def get_document(collection: str, doc_id: str) -> dict | None:
    _columns(collection)
    row = fetch_one(f"SELECT * FROM {collection} WHERE id = ?", (doc_id,))
    return _to_doc(row) if row else None


def update_document(collection: str, doc_id: str, data: dict) -> None:
    fields = dict(data)
    fields.pop("id", None)
    fields["updated_at"] = now_iso()
    _check_fields(collection, fields)

    assignments = ", ".join(f"{c} = ?" for c in fields)
    with get_conn() as conn:
        cur = conn.execute(
            f"UPDATE {collection} SET {assignments} WHERE id = ?",
            (*fields.values(), doc_id),
        )
        if cur.rowcount == 0:
            raise NotFoundError(f"No {collection} document with id {doc_id}")
    logger.info("Updated %s document %s: %s", collection, doc_id, sorted(data))


def delete_document(collection: str, doc_id: str) -> None:
    _columns(collection)
    execute(f"DELETE FROM {collection} WHERE id = ?", (doc_id,))
    logger.info("Deleted %s document %s", collection, doc_id)


def query_documents(
    collection: str,
    conditions: list[tuple] = (),
    sort_by: str | None = None,
    direction: str = "asc",
) -> list[dict]:
    """
    Filter a collection with (field, operator, value) conditions, ANDed together.
    Operators: == != < <= > >=
    """
    sql = f"SELECT * FROM {collection} WHERE 1=1"
    params = []

    for field, op, value in conditions:
        _check_fields(collection, [field])
        if op not in OPERATORS:
            raise ValueError(f"Unsupported operator: {op}")
        sql += f" AND {field} {OPERATORS[op]} ?"
        params.append(value)

    if sort_by:
        _check_fields(collection, [sort_by])
        sql += f" ORDER BY {sort_by} {'DESC' if direction == 'desc' else 'ASC'}"

    return [_to_doc(r) for r in fetch_all(sql, tuple(params))]


# ---------- Profiles ----------

def _default_profile(uid: str) -> dict:
    return {
        "id": uid,
        "first_name": "",
        "last_name": "",
        "email": "",
        "phone": "",
        "company": config.COMPANY_NAME,
        "position": "",
        "role": "staff",
    }


def get_user_profile(uid: str) -> dict:
    """
    Return the profile mirrored for an account, creating a blank one on first access.
    On a storage error a default profile is returned and nothing is written.
    """
    try:
        doc = get_document("users", uid)
        if doc:
            return doc
        profile = _default_profile(uid)
        now = now_iso()
        add_document("users", {**profile, "created_at": now, "updated_at": now})
        return {**profile, "created_at": now, "updated_at": now}
    except sqlite3.Error:
        logger.exception("Error getting user profile %s", uid)
        return _default_profile(uid)


def update_user_profile(uid: str, data: dict) -> None:
    get_user_profile(uid)
    update_document("users", uid, data)


# ---------- Payments ----------

def create_payment(payment: dict) -> dict:
    """
    Record a payment, then mark the client paid with its new due date.

    The two writes commit separately; if the client update fails the payment
    stays recorded and the error propagates.
    """
    client = get_document("clients", payment["client_id"])
    names = {}
    if client:
        names = {
            "first_name": client.get("first_name") or "",
            "last_name": client.get("last_name") or "",
        }

    record = {**payment, **names, "status": "completed"}
    payment_id = add_document("payments", record)

    update_document(
        "clients",
        payment["client_id"],
        {
            "status": "paid",
            "is_connected": True,
            "last_payment_date": now_iso(),
            "last_payment_amount": payment["amount"],
            "last_payment_id": payment_id,
            "due_date": payment["new_due_date"],
        },
    )
    return get_document("payments", payment_id)


# ---------- Settings ----------

def get_setting(key: str, default: str | None = None) -> str | None:
    row = fetch_one("SELECT value FROM app_settings WHERE key = ?", (key,))
    if row:
        return str(row["value"])
    return default


def set_setting(key: str, value: str) -> None:
    execute(
        """
        INSERT INTO app_settings(key, value) VALUES(?, ?)
        ON CONFLICT(key) DO UPDATE SET value=excluded.value
        """,
        (key, value),
    )


def is_force_password_change() -> bool:
    return get_setting("force_password_change") == "1"


def set_force_password_change() -> None:
    set_setting("force_password_change", "1")


def clear_force_password_change() -> None:
    set_setting("force_password_change", "0")


def backup_bytes() -> bytes:
    """Snapshot the whole database through sqlite's online backup."""
    with tempfile.TemporaryDirectory() as tmp:
        target = Path(tmp) / "backup.db"
        with get_conn() as src:
            dst = sqlite3.connect(target)
            try:
                src.backup(dst)
            finally:
                dst.close()
        return target.read_bytes()
