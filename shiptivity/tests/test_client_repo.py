import sqlite3

import pytest

from shiptivity.db import get_conn
from shiptivity.domain.lane_engine import PriorityUpdate
from shiptivity.repository import client_repo


def _prios(conn):
    return {r["id"]: (r["status"], r["priority"]) for r in client_repo.list_all(conn)}


def test_list_by_lane_orders_by_integer_priority(seed):
    seed([(1, "backlog", 10), (2, "backlog", 2), (3, "backlog", 1), (4, "complete", 1)])
    with get_conn() as conn:
        rows = client_repo.list_by_lane(conn, "backlog")
    assert [r["id"] for r in rows] == [3, 2, 1]


def test_get_by_id_and_counts(seed):
    seed([(1, "backlog", 1), (2, "in-progress", 1), (3, "in-progress", 2)])
    with get_conn() as conn:
        assert client_repo.get_by_id(conn, 2)["status"] == "in-progress"
        assert client_repo.get_by_id(conn, 99) is None
        assert client_repo.count_by_lane(conn) == {"backlog": 1, "in-progress": 2, "complete": 0}


def test_status_check_constraint(seed):
    with get_conn() as conn:
        with pytest.raises(sqlite3.IntegrityError):
            client_repo.insert_client(conn, 1, "x", "", "done", 1)


def test_apply_updates_writes_whole_batch(seed):
    seed([(1, "backlog", 1), (2, "backlog", 2)])
    with get_conn() as conn:
        n = client_repo.apply_updates(conn, [PriorityUpdate(1, 2), PriorityUpdate(2, 1, "complete")])
        assert n == 2
        assert _prios(conn) == {1: ("backlog", 2), 2: ("complete", 1)}


def test_apply_updates_missing_id_rolls_back(seed):
    seed([(1, "backlog", 1), (2, "backlog", 2)])
    with get_conn() as conn:
        before = _prios(conn)
        with pytest.raises(client_repo.RecordNotFound) as ei:
            client_repo.apply_updates(conn, [PriorityUpdate(1, 5), PriorityUpdate(404, 1), PriorityUpdate(2, 6)])
        assert ei.value.client_id == 404
        assert _prios(conn) == before
        assert not conn.in_transaction


def test_apply_updates_keeps_original_error_after_store_rolled_back(seed):
    seed([(1, "backlog", 1), (2, "backlog", 2)])
    with get_conn() as conn:
        before = _prios(conn)

        def batch():
            yield PriorityUpdate(1, 2)
            # stands in for SQLite ending the transaction on its own
            conn.execute("ROLLBACK")
            raise RuntimeError("batch aborted")

        with pytest.raises(RuntimeError, match="batch aborted"):
            client_repo.apply_updates(conn, batch())
        assert not conn.in_transaction
        assert _prios(conn) == before


def test_apply_updates_rejects_values_outside_integer_range(seed):
    seed([(1, "complete", 1)])
    with get_conn() as conn:
        with pytest.raises(OverflowError):
            client_repo.apply_updates(conn, [PriorityUpdate(1, 2**63)])
        assert not conn.in_transaction
        assert _prios(conn) == {1: ("complete", 1)}
