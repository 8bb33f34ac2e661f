from __future__ import annotations

import logging
import sqlite3
import threading
from typing import Any

from ..db import get_conn
from ..logs import LogContext
from .config_svc import get_gap_policy
from ..domain.lane_engine import (
    Client,
    ErrorKind,
    GapPolicy,
    Lane,
    PriorityUpdate,
    ReorderError,
    board_moves,
    lane_violations,
    parse_id,
    parse_priority,
    parse_status,
    plan_append_to_complete,
    plan_normalize,
    plan_priority_move,
)
from ..repository import client_repo

logger = logging.getLogger(__name__)

# Held across read -> plan -> write so two reorders never interleave.
_write_lock = threading.Lock()


class LaneMaintainer:
    """
    Keeps every lane's priorities dense (1..n) when a client moves.

    Works on a connection owned by the caller; holds no state of its own
    beyond the gap policy.
    """

    def __init__(self, conn: sqlite3.Connection, gap_policy: GapPolicy = GapPolicy.COMPACT):
        self.conn = conn
        self.gap_policy = gap_policy

    def snapshot(self) -> list[Client]:
        return [Client.from_row(r) for r in client_repo.list_all(self.conn)]

    def lane(self, status: str) -> list[Client]:
        return [Client.from_row(r) for r in client_repo.list_by_lane(self.conn, status)]

    def find(self, client_id: Any) -> Client:
        cid = parse_id(client_id)
        row = client_repo.get_by_id(self.conn, cid)
        if row is None:
            raise ReorderError(ErrorKind.INVALID_ID, "Invalid id provided.", "Cannot find client with that id.")
        return Client.from_row(row)

    def plan(self, moved: Client, target: Lane | None, priority: int | None) -> list[PriorityUpdate] | None:
        """Batch for one move, or None when nothing has to be written."""
        lane = target or Lane(moved.status)
        if priority is None and lane is not Lane.COMPLETE:
            return None

        lanes = {lane.value: self.lane(lane.value)}
        if moved.status != lane.value:
            lanes[moved.status] = self.lane(moved.status)

        if priority is not None:
            return plan_priority_move(moved, lane, priority, lanes, self.gap_policy)
        return plan_append_to_complete(moved, lanes, self.gap_policy)

    def commit(self, updates: list[PriorityUpdate]) -> int:
        try:
            return client_repo.apply_updates(self.conn, updates)
        except client_repo.RecordNotFound as e:
            raise ReorderError(
                ErrorKind.STORE_TRANSACTION_FAILED,
                "Update failed.",
                f"Client {e.client_id} disappeared before the update was written.",
            ) from e
        except (sqlite3.Error, OverflowError) as e:
            raise ReorderError(ErrorKind.STORE_TRANSACTION_FAILED, "Update failed.", str(e)) from e

    def reorder(self, client_id: Any, status: Any = None, priority: Any = None) -> list[Client]:
        """
        Move one client to `status` and/or `priority` and renumber its lanes.
        Returns the full board after the write.
        """
        moved = self.find(client_id)
        new_priority = parse_priority(priority)
        target = parse_status(status)

        updates = self.plan(moved, target, new_priority)
        if updates:
            written = self.commit(updates)
            logger.info(
                "reordered client %s -> %s/%s (%d rows, policy=%s)",
                moved.id, updates[-1].status, updates[-1].priority, written, self.gap_policy.value,
            )
        return self.snapshot()

    def normalize(self) -> dict[str, int]:
        plans = plan_normalize(self.snapshot())
        batch = [u for lane_updates in plans.values() for u in lane_updates]
        if batch:
            self.commit(batch)
        return {lane: len(lane_updates) for lane, lane_updates in plans.items()}


def reorder_client(client_id: Any, status: Any, priority: Any, log: LogContext) -> list[dict]:
    with _write_lock, get_conn() as conn:
        m = LaneMaintainer(conn, get_gap_policy())
        moved = m.find(client_id)
        log.set_entity("CLIENT", str(moved.id))
        log.set_before(moved.to_dict())
        before = m.snapshot()
        clients = m.reorder(moved.id, status, priority)
    log.set_after(next((c.to_dict() for c in clients if c.id == moved.id), None))
    log.set_moves(board_moves(before, clients))
    return [c.to_dict() for c in clients]


def normalize_lanes(log: LogContext) -> dict[str, int]:
    with _write_lock, get_conn() as conn:
        m = LaneMaintainer(conn, get_gap_policy())
        before = m.snapshot()
        rewritten = m.normalize()
        after = m.snapshot() if any(rewritten.values()) else before
    if any(rewritten.values()):
        logger.warning("normalized lanes: %s", rewritten)
    log.set_after(rewritten)
    log.set_moves(board_moves(before, after))
    return rewritten


def check_lanes() -> dict[str, list[str]]:
    with get_conn() as conn:
        return lane_violations(LaneMaintainer(conn).snapshot())
