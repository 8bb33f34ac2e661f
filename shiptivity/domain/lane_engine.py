from __future__ import annotations

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Iterable, Mapping


class Lane(str, Enum):
    BACKLOG = "backlog"
    IN_PROGRESS = "in-progress"
    COMPLETE = "complete"


LANE_NAMES = tuple(lane.value for lane in Lane)


class GapPolicy(str, Enum):
    """What happens to the lane a client leaves.

    COMPACT closes the hole and renumbers every touched lane to 1..n.
    LEGACY only shifts the destination lane and leaves the hole behind.
    """
    COMPACT = "compact"
    LEGACY = "legacy"


class ErrorKind(str, Enum):
    INVALID_ID = "InvalidId"
    INVALID_STATUS = "InvalidStatus"
    INVALID_PRIORITY = "InvalidPriority"
    EMPTY_LANE = "EmptyLane"
    STORE_TRANSACTION_FAILED = "StoreTransactionFailed"


class ReorderError(Exception):
    def __init__(self, kind: ErrorKind, message: str, long_message: str = ""):
        super().__init__(f"{kind.value}: {long_message or message}")
        self.kind = kind
        self.message = message
        self.long_message = long_message

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "message": self.message, "long_message": self.long_message}


@dataclass(frozen=True)
class Client:
    id: int
    name: str
    description: str
    status: str
    priority: int

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Client":
        return cls(
            id=int(row["id"]),
            name=row["name"] or "",
            description=row["description"] or "",
            status=row["status"],
            priority=int(row["priority"]),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class PriorityUpdate:
    """One row rewrite. status=None keeps the current lane."""
    id: int
    priority: int
    status: str | None = None


# ---------------- input validation ----------------

# SQLite INTEGER is a signed 64-bit value.
SQLITE_MIN_INT = -2**63
SQLITE_MAX_INT = 2**63 - 1
# Upper bound for a requested priority; leaves room for the +1 shifts of the legacy policy.
MAX_PRIORITY = 2**31 - 1


def parse_id(raw: Any) -> int:
    bad = ReorderError(ErrorKind.INVALID_ID, "Invalid id provided.", "Id can only be integer.")
    if isinstance(raw, bool):
        raise bad
    if isinstance(raw, int):
        cid = raw
    else:
        try:
            cid = int(str(raw).strip())
        except (TypeError, ValueError):
            raise bad
    if not SQLITE_MIN_INT <= cid <= SQLITE_MAX_INT:
        raise ReorderError(ErrorKind.INVALID_ID, "Invalid id provided.", "Cannot find client with that id.")
    return cid


def parse_priority(raw: Any) -> int | None:
    """
    None means "not supplied". Accepts non-negative integers, integral floats
    and ASCII digit strings up to MAX_PRIORITY. 0 is kept as the "top of
    lane" sentinel; the planners place it at slot 1.
    """
    if raw is None:
        return None
    bad = ReorderError(
        ErrorKind.INVALID_PRIORITY,
        "Invalid priority provided.",
        "Priority can only be positive integer.",
    )
    if isinstance(raw, bool):
        raise bad
    if isinstance(raw, float):
        if not raw.is_integer():
            raise bad
        raw = int(raw)
    if isinstance(raw, str):
        s = raw.strip()
        # isdigit() alone also admits superscripts and other non-ASCII digits
        if not (s.isascii() and s.isdigit()):
            raise bad
        raw = int(s)
    if not isinstance(raw, int) or not 0 <= raw <= MAX_PRIORITY:
        raise bad
    return raw


def parse_status(raw: Any) -> Lane | None:
    if raw is None:
        return None
    if not isinstance(raw, str) or raw not in LANE_NAMES:
        raise ReorderError(
            ErrorKind.INVALID_STATUS,
            "Invalid status provided.",
            "Status can only be one of the following: [backlog | in-progress | complete].",
        )
    return Lane(raw)


# ---------------- planning ----------------

def _by_priority(c: Client) -> tuple[int, int]:
    return (c.priority, c.id)


def _renumber(ordered: Iterable[Client]) -> list[PriorityUpdate]:
    """Dense 1..n for an already ordered lane; only rows that change are emitted."""
    return [
        PriorityUpdate(c.id, pos)
        for pos, c in enumerate(ordered, start=1)
        if c.priority != pos
    ]


def plan_close_gap(departed_lane: Iterable[Client], moved: Client) -> list[PriorityUpdate]:
    remaining = sorted((c for c in departed_lane if c.id != moved.id), key=_by_priority)
    return _renumber(remaining)


def plan_priority_move(
    moved: Client,
    target: Lane,
    priority: int,
    lanes: Mapping[str, list[Client]],
    policy: GapPolicy = GapPolicy.COMPACT,
) -> list[PriorityUpdate]:
    """
    Put `moved` at `priority` inside `target`, making room for it.

    `lanes` is one snapshot keyed by lane name; it must hold the target lane
    and, when the client changes lane, the lane it leaves. The moved row's
    own update is always last in the batch.
    """
    slot = max(priority, 1)
    others = [c for c in lanes.get(target.value, []) if c.id != moved.id]

    if policy is GapPolicy.LEGACY:
        conflict = any(c.priority == slot for c in others)
        updates = [
            PriorityUpdate(c.id, c.priority + 1)
            for c in others
            if conflict and c.priority >= slot
        ]
        updates.append(PriorityUpdate(moved.id, slot, target.value))
        return updates

    updates: list[PriorityUpdate] = []
    if moved.status != target.value:
        updates.extend(plan_close_gap(lanes.get(moved.status, []), moved))

    ordered = sorted(others, key=_by_priority)
    slot = min(slot, len(ordered) + 1)
    for pos, c in enumerate(ordered, start=1):
        new_pos = pos if pos < slot else pos + 1
        if c.priority != new_pos:
            updates.append(PriorityUpdate(c.id, new_pos))
    updates.append(PriorityUpdate(moved.id, slot, target.value))
    return updates


def plan_append_to_complete(
    moved: Client,
    lanes: Mapping[str, list[Client]],
    policy: GapPolicy = GapPolicy.COMPACT,
) -> list[PriorityUpdate]:
    """Mark complete: drop `moved` at the bottom of the complete lane."""
    done = sorted(lanes.get(Lane.COMPLETE.value, []), key=_by_priority)
    if not done:
        raise ReorderError(
            ErrorKind.EMPTY_LANE,
            "Cannot append to an empty lane.",
            "The complete lane has no clients to order against.",
        )

    if policy is GapPolicy.LEGACY:
        return [PriorityUpdate(moved.id, done[-1].priority + 1, Lane.COMPLETE.value)]

    updates: list[PriorityUpdate] = []
    if moved.status != Lane.COMPLETE.value:
        updates.extend(plan_close_gap(lanes.get(moved.status, []), moved))
    others = [c for c in done if c.id != moved.id]
    updates.extend(_renumber(others))
    updates.append(PriorityUpdate(moved.id, len(others) + 1, Lane.COMPLETE.value))
    return updates


def plan_normalize(clients: Iterable[Client]) -> dict[str, list[PriorityUpdate]]:
    by_lane: dict[str, list[Client]] = {name: [] for name in LANE_NAMES}
    for c in clients:
        by_lane.setdefault(c.status, []).append(c)
    return {lane: _renumber(sorted(rows, key=_by_priority)) for lane, rows in by_lane.items()}


def lane_violations(clients: Iterable[Client]) -> dict[str, list[str]]:
    """Per-lane description of duplicates and gaps; empty lists mean the lane is dense."""
    by_lane: dict[str, list[int]] = {name: [] for name in LANE_NAMES}
    for c in clients:
        by_lane.setdefault(c.status, []).append(c.priority)

    out: dict[str, list[str]] = {}
    for lane, prios in by_lane.items():
        problems: list[str] = []
        seen: set[int] = set()
        for p in sorted(prios):
            if p in seen:
                problems.append(f"duplicate priority {p}")
            seen.add(p)
        expected = set(range(1, len(prios) + 1))
        for p in sorted(expected - seen):
            problems.append(f"missing priority {p}")
        for p in sorted(seen - expected):
            problems.append(f"priority {p} out of range 1..{len(prios)}")
        out[lane] = problems
    return out


def board_moves(before: Iterable[Client], after: Iterable[Client]) -> list[dict]:
    """Rows whose lane position changed between two snapshots, ordered by id."""
    old = {c.id: c for c in before}
    moves = []
    for c in sorted(after, key=lambda c: c.id):
        prev = old.get(c.id)
        if prev is None or (prev.status, prev.priority) == (c.status, c.priority):
            continue
        moves.append({
            "client_id": c.id,
            "from_status": prev.status,
            "from_priority": prev.priority,
            "to_status": c.status,
            "to_priority": c.priority,
        })
    return moves
