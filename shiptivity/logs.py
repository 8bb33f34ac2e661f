"""
Audit trail for board changes.

operation_log keeps one row per mutating request (payload, moved client
before/after, result). lane_move keeps one row per client whose lane position
changed in that request, so a client's history on the board can be replayed.
"""
import json, time, uuid, datetime as dt
from typing import Optional
from .db import get_conn

DDL = """
CREATE TABLE IF NOT EXISTS operation_log (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  ts TEXT NOT NULL,
  action TEXT NOT NULL,
  entity_type TEXT,
  entity_id TEXT,
  request_id TEXT NOT NULL,
  before_json TEXT,
  after_json TEXT,
  payload_json TEXT,
  moved_count INTEGER NOT NULL DEFAULT 0,
  result TEXT,
  err_msg TEXT,
  latency_ms INTEGER
);
CREATE INDEX IF NOT EXISTS idx_log_ts ON operation_log(ts);
CREATE INDEX IF NOT EXISTS idx_log_action ON operation_log(action);
CREATE TABLE IF NOT EXISTS lane_move (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  request_id TEXT NOT NULL,
  ts TEXT NOT NULL,
  client_id INTEGER NOT NULL,
  from_status TEXT NOT NULL,
  from_priority INTEGER NOT NULL,
  to_status TEXT NOT NULL,
  to_priority INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_lane_move_client ON lane_move(client_id, id);
CREATE INDEX IF NOT EXISTS idx_lane_move_request ON lane_move(request_id);
"""

def ensure_log_schema():
    with get_conn() as conn:
        conn.executescript(DDL)


def _json(obj):
    return json.dumps(obj, ensure_ascii=False, default=str) if obj is not None else None


class LogContext:
    """Collects what one request did to the board and writes it on `write()`."""

    def __init__(self, action: str):
        self.action = action
        self.request_id = str(uuid.uuid4())
        self.start = time.perf_counter()
        self.before = None
        self.after = None
        self.payload = None
        self.entity_type = None
        self.entity_id = None
        self.moves: list[dict] = []

    def set_entity(self, etype: str, eid: str):
        self.entity_type = etype
        self.entity_id = eid

    def set_before(self, obj): self.before = obj
    def set_after(self, obj): self.after = obj
    def set_payload(self, obj): self.payload = obj

    def set_moves(self, moves: list[dict]):
        """Rows from lane_engine.board_moves: client_id, from_/to_ status and priority."""
        self.moves = list(moves)

    def write(self, result: str = "OK", err: Optional[str] = None):
        ts = dt.datetime.now(dt.timezone.utc).isoformat()
        # moves only describe committed state
        moves = self.moves if result == "OK" else []
        with get_conn() as conn:
            conn.execute("BEGIN")
            conn.execute(
                """INSERT INTO operation_log
                (ts,action,entity_type,entity_id,request_id,before_json,after_json,payload_json,moved_count,result,err_msg,latency_ms)
                VALUES(?,?,?,?,?,?,?,?,?,?,?,?)""",
                (
                    ts, self.action, self.entity_type, self.entity_id, self.request_id,
                    _json(self.before), _json(self.after), _json(self.payload),
                    len(moves), result, err, int((time.perf_counter() - self.start) * 1000),
                ),
            )
            conn.executemany(
                "INSERT INTO lane_move(request_id, ts, client_id, from_status, from_priority, to_status, to_priority) "
                "VALUES(?,?,?,?,?,?,?)",
                [
                    (self.request_id, ts, m["client_id"], m["from_status"], m["from_priority"],
                     m["to_status"], m["to_priority"])
                    for m in moves
                ],
            )
            conn.execute("COMMIT")


def search_operation_logs(q: str|None, action: str|None, client_id: int|None, ts_from: str|None, ts_to: str|None, page:int, size:int):
    """Paged operation_log search. client_id matches the moved client and every client shifted by the request."""
    where = []
    params = {}
    if q:
        where.append("(payload_json LIKE :q OR before_json LIKE :q OR after_json LIKE :q)")
        params["q"] = f"%{q}%"
    if action:
        where.append("action = :action")
        params["action"] = action
    if client_id is not None:
        where.append(
            "(entity_id = :cid_text OR request_id IN (SELECT request_id FROM lane_move WHERE client_id = :cid))"
        )
        params["cid"] = client_id
        params["cid_text"] = str(client_id)
    if ts_from:
        where.append("ts >= :from")
        params["from"] = ts_from
    if ts_to:
        where.append("ts <= :to")
        params["to"] = ts_to
    wh = " WHERE " + " AND ".join(where) if where else ""
    with get_conn() as conn:
        total = conn.execute(f"SELECT COUNT(1) AS cnt FROM operation_log{wh}", params).fetchone()["cnt"]
        rows = conn.execute(
            f"SELECT * FROM operation_log{wh} ORDER BY id DESC LIMIT :limit OFFSET :offset",
            {**params, "limit": size, "offset": (max(page, 1) - 1) * size},
        ).fetchall()
        items = [dict(r) for r in rows]
        for it in items:
            it["moves"] = [
                dict(m) for m in conn.execute(
                    "SELECT client_id, from_status, from_priority, to_status, to_priority "
                    "FROM lane_move WHERE request_id=? ORDER BY client_id",
                    (it["request_id"],),
                ).fetchall()
            ]
        return total, items


def client_move_history(client_id: int, limit: int = 50) -> list[dict]:
    """Lane positions a client went through, newest first."""
    with get_conn() as conn:
        rows = conn.execute(
            "SELECT m.ts, m.request_id, o.action, m.from_status, m.from_priority, m.to_status, m.to_priority "
            "FROM lane_move m LEFT JOIN operation_log o ON o.request_id = m.request_id "
            "WHERE m.client_id=? ORDER BY m.id DESC LIMIT ?",
            (client_id, limit),
        ).fetchall()
        return [dict(r) for r in rows]
