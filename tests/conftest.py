import pytest

import config
import db


@pytest.fixture(autouse=True)
def database(tmp_path, monkeypatch):
    db_path = tmp_path / "test.db"
    monkeypatch.setattr(db, "DB_FILE", db_path)
    monkeypatch.setattr(config, "BCRYPT_ROUNDS", 4)
    db.init_db()
    return db_path


@pytest.fixture
def make_client():
    def _make(**overrides):
        data = {
            "first_name": "Juan",
            "last_name": "Dela Cruz",
            "email": "juan@example.com",
            "phone": "09171234567",
            "address": "12 Mabini St.",
            "plan": "basic",
            "status": "pending",
            "is_connected": False,
            "archived": False,
            "due_date": "2026-02-01",
            "plan_start_date": "2026-01-01",
        }
        data.update(overrides)
        client_id = db.add_document("clients", data)
        return db.get_document("clients", client_id)

    return _make
