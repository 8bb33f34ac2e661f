from __future__ import annotations

# shiptivity/db.py
import sqlite3
from contextlib import contextmanager
from typing import Iterator
import os
import yaml

# DB path resolution order:
# 1) env SHIPTIVITY_DB_PATH (highest)
# 2) config.yaml test_db_path (when running under tests)
# 3) config.yaml db_path
# 4) fallback: clients.db in the project root
_PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
_ROOT_DB = os.path.join(_PROJECT_ROOT, "clients.db")


def _read_config_yaml() -> dict:
    cfg_path = os.environ.get("SHIPTIVITY_CONFIG") or os.path.join(_PROJECT_ROOT, "config.yaml")
    if not os.path.exists(cfg_path):
        return {}
    with open(cfg_path, "r", encoding="utf-8") as f:
        cfg = yaml.safe_load(f) or {}
    out = {}
    for k in ("db_path", "test_db_path"):
        v = cfg.get(k)
        if isinstance(v, str) and v.strip():
            out[k] = v.strip()
    return out


def get_db_path() -> str:
    env_path = os.environ.get("SHIPTIVITY_DB_PATH")
    if env_path:
        path = env_path
    else:
        cfg = _read_config_yaml()
        is_test = (os.environ.get("APP_ENV") == "test") or (os.environ.get("PYTEST_CURRENT_TEST") is not None)
        if is_test and cfg.get("test_db_path"):
            path = cfg["test_db_path"]
        else:
            path = cfg.get("db_path") or _ROOT_DB

    dirn = os.path.dirname(path) or "."
    os.makedirs(dirn, exist_ok=True)
    return path


@contextmanager
def get_conn(db_path: str | None = None) -> Iterator[sqlite3.Connection]:
    """
    Scoped SQLite connection; always closed on exit.
    Autocommit mode (isolation_level=None): multi-row writes open their own
    BEGIN/COMMIT, see repository.client_repo.apply_updates.
    """
    path = db_path or get_db_path()
    conn = sqlite3.connect(
        path,
        check_same_thread=False,
        isolation_level=None,
    )
    try:
        conn.row_factory = sqlite3.Row
        yield conn
    finally:
        conn.close()
