# shiptivity/services/client_svc.py
from __future__ import annotations

from typing import Any

import pandas as pd

from ..db import get_conn
from ..logs import LogContext
from ..domain.lane_engine import Client, ErrorKind, ReorderError, parse_id, parse_status
from ..repository import client_repo


def ensure_client_schema():
    with get_conn() as conn:
        client_repo.ensure_schema(conn)


def list_clients(status: Any = None) -> list[dict]:
    lane = parse_status(status)
    with get_conn() as conn:
        rows = client_repo.list_by_lane(conn, lane.value) if lane else client_repo.list_all(conn)
        return [Client.from_row(r).to_dict() for r in rows]


def get_client(client_id: Any) -> dict:
    cid = parse_id(client_id)
    with get_conn() as conn:
        row = client_repo.get_by_id(conn, cid)
    if row is None:
        raise ReorderError(ErrorKind.INVALID_ID, "Invalid id provided.", "Cannot find client with that id.")
    return Client.from_row(row).to_dict()


def seed_load(clients_csv: str, log: LogContext) -> dict:
    """Load clients from CSV with columns: id, name, description, status, priority.
    Rows whose id already exists are skipped. Lanes are not renumbered here;
    run lane_svc.normalize_lanes afterwards if the file is not dense.
    """
    df = pd.read_csv(clients_csv, dtype={"name": str, "description": str, "status": str})
    df["description"] = df["description"].fillna("")

    created, skipped = 0, 0
    with get_conn() as conn:
        client_repo.ensure_schema(conn)
        for _, r in df.iterrows():
            status = parse_status(str(r["status"]).strip())
            cid = int(r["id"])
            if client_repo.get_by_id(conn, cid) is not None:
                skipped += 1
                continue
            client_repo.insert_client(
                conn, cid, str(r["name"]).strip(), str(r["description"]).strip(), status.value, int(r["priority"])
            )
            created += 1

    log.set_after({"created": created, "skipped": skipped})
    return {"created": created, "skipped": skipped}
