# shiptivity/services/config_svc.py
from ..db import get_conn
from ..logs import LogContext
from ..domain.lane_engine import GapPolicy

DEFAULTS = {
    # compact: moving a client closes the hole in the lane it left.
    # legacy: only the destination lane is shifted.
    "lane_gap_policy": GapPolicy.COMPACT.value,
}

_VALIDATORS = {
    "lane_gap_policy": lambda v: GapPolicy(str(v)).value,
}

def ensure_default_config():
    """Create the config table and insert missing keys (existing values are kept)."""
    with get_conn() as conn:
        conn.execute("CREATE TABLE IF NOT EXISTS config (key TEXT PRIMARY KEY, value TEXT NOT NULL)")
        for k, v in DEFAULTS.items():
            conn.execute(
                "INSERT INTO config(key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO NOTHING",
                (k, v),
            )

def get_config() -> dict:
    with get_conn() as conn:
        rows = conn.execute("SELECT key, value FROM config").fetchall()
    cfg = {r["key"]: r["value"] for r in rows}
    return {
        "lane_gap_policy": cfg.get("lane_gap_policy", DEFAULTS["lane_gap_policy"]),
    }

def get_gap_policy() -> GapPolicy:
    return GapPolicy(get_config()["lane_gap_policy"])

def update_config(upd: dict, log: LogContext) -> list[str]:
    clean = {}
    for k, v in upd.items():
        if k not in _VALIDATORS:
            raise ValueError(f"unknown config key: {k}")
        try:
            clean[k] = _VALIDATORS[k](v)
        except ValueError:
            raise ValueError(f"invalid value for {k}: {v!r}")

    updated = []
    with get_conn() as conn:
        before = {r["key"]: r["value"] for r in conn.execute("SELECT key,value FROM config")}
        for k, v in clean.items():
            conn.execute(
                "INSERT INTO config(key,value) VALUES(?,?) "
                "ON CONFLICT(key) DO UPDATE SET value=excluded.value",
                (k, v)
            )
            updated.append(k)
        after = {r["key"]: r["value"] for r in conn.execute("SELECT key,value FROM config")}
    log.set_before(before); log.set_after(after)
    return updated
