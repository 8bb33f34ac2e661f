import os
import sys
import sqlite3
import pytest
from pathlib import Path

# Ensure project root on sys.path
_THIS_DIR = Path(__file__).resolve().parent
_PROJECT_ROOT = _THIS_DIR.parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))


@pytest.fixture(scope="session")
def tmp_db_path(tmp_path_factory):
    path = tmp_path_factory.mktemp("db") / "clients_test.db"
    # Point the app to this temp DB
    os.environ["SHIPTIVITY_DB_PATH"] = str(path)
    from shiptivity.logs import ensure_log_schema
    from shiptivity.services.client_svc import ensure_client_schema
    from shiptivity.services.config_svc import ensure_default_config
    ensure_log_schema()
    ensure_client_schema()
    ensure_default_config()
    return str(path)


@pytest.fixture()
def client(tmp_db_path):
    from shiptivity.api import app
    from fastapi.testclient import TestClient
    with TestClient(app) as c:
        yield c


@pytest.fixture(autouse=True)
def _clean_db(tmp_db_path):
    # Safety: only ever wipe the temp DB
    assert os.environ.get("SHIPTIVITY_DB_PATH") == tmp_db_path, "Refusing to clean non-temp DB"
    conn = sqlite3.connect(tmp_db_path)
    try:
        for t in ("clients", "operation_log", "lane_move", "config"):
            conn.execute(f"DELETE FROM {t}")
        conn.execute("DROP TRIGGER IF EXISTS fail_update")
        conn.commit()
    finally:
        conn.close()
    from shiptivity.services.config_svc import ensure_default_config
    ensure_default_config()
    yield


@pytest.fixture()
def seed(tmp_db_path):
    """Insert (id, status, priority) rows; names are derived from the id."""
    def _seed(rows):
        conn = sqlite3.connect(tmp_db_path)
        try:
            for cid, status, priority in rows:
                conn.execute(
                    "INSERT INTO clients(id, name, description, status, priority) VALUES(?,?,?,?,?)",
                    (cid, f"Client {cid}", "", status, priority),
                )
            conn.commit()
        finally:
            conn.close()
    return _seed
