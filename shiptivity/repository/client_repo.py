from __future__ import annotations

from sqlite3 import Connection
from typing import Iterable

from ..domain.lane_engine import LANE_NAMES, PriorityUpdate


class RecordNotFound(LookupError):
    def __init__(self, client_id: int):
        super().__init__(f"client {client_id} not found")
        self.client_id = client_id


_LANES_SQL = ",".join(f"'{name}'" for name in LANE_NAMES)


def ensure_schema(conn: Connection):
    conn.execute(
        f"""
        CREATE TABLE IF NOT EXISTS clients (
            id INTEGER PRIMARY KEY,
            name TEXT NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            status TEXT NOT NULL CHECK (status IN ({_LANES_SQL})),
            priority INTEGER NOT NULL
        )
        """
    )
    # not unique: a batch passes through duplicate priorities mid-transaction
    conn.execute("CREATE INDEX IF NOT EXISTS idx_clients_lane ON clients(status, priority)")


def insert_client(conn: Connection, client_id: int | None, name: str, description: str, status: str, priority: int) -> int:
    cur = conn.execute(
        "INSERT INTO clients(id, name, description, status, priority) VALUES(?,?,?,?,?)",
        (client_id, name, description, status, int(priority)),
    )
    return int(cur.lastrowid)


def list_all(conn: Connection):
    return conn.execute(
        "SELECT id, name, description, status, priority FROM clients "
        "ORDER BY status ASC, priority ASC, id ASC"
    ).fetchall()


def get_by_id(conn: Connection, client_id: int):
    return conn.execute(
        "SELECT id, name, description, status, priority FROM clients WHERE id=?",
        (client_id,),
    ).fetchone()


def list_by_lane(conn: Connection, status: str):
    return conn.execute(
        "SELECT id, name, description, status, priority FROM clients "
        "WHERE status=? ORDER BY priority ASC, id ASC",
        (status,),
    ).fetchall()


def count_by_lane(conn: Connection) -> dict[str, int]:
    out = {name: 0 for name in LANE_NAMES}
    for r in conn.execute("SELECT status, COUNT(1) AS c FROM clients GROUP BY status").fetchall():
        out[r["status"]] = int(r["c"])
    return out


def apply_updates(conn: Connection, updates: Iterable[PriorityUpdate]) -> int:
    """
    Write a batch of status/priority changes in one transaction.
    Any id that matches no row rolls the whole batch back with RecordNotFound.
    The connection must be in autocommit mode (isolation_level=None).
    """
    written = 0
    conn.execute("BEGIN IMMEDIATE")
    try:
        for u in updates:
            if u.status is None:
                cur = conn.execute("UPDATE clients SET priority=? WHERE id=?", (u.priority, u.id))
            else:
                cur = conn.execute(
                    "UPDATE clients SET status=?, priority=? WHERE id=?",
                    (u.status, u.priority, u.id),
                )
            if cur.rowcount == 0:
                raise RecordNotFound(u.id)
            written += 1
    except BaseException:
        # SQLite may already have rolled back on its own (e.g. SQLITE_FULL)
        if conn.in_transaction:
            conn.execute("ROLLBACK")
        raise
    conn.execute("COMMIT")
    return written
