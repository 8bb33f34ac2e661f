"""
Create the client board tables and load seed clients.

Usage:
  python -m shiptivity.scripts.init_db --seeds seeds/clients.csv [--reset] [--normalize]

--reset deletes every row in `clients` before loading.
--normalize renumbers every lane to 1..n after loading.
"""
from __future__ import annotations

import argparse
from shiptivity.db import get_conn, get_db_path
from shiptivity.logs import LogContext, ensure_log_schema
from shiptivity.services.client_svc import ensure_client_schema, seed_load
from shiptivity.services.config_svc import ensure_default_config
from shiptivity.services.lane_svc import normalize_lanes


def main(argv=None):
    ap = argparse.ArgumentParser(description="Initialize the client board database")
    ap.add_argument("--seeds", required=True, help="CSV with id,name,description,status,priority")
    ap.add_argument("--reset", action="store_true", help="delete existing clients first")
    ap.add_argument("--normalize", action="store_true", help="renumber lanes after loading")
    args = ap.parse_args(argv)

    ensure_log_schema()
    ensure_client_schema()
    ensure_default_config()

    if args.reset:
        with get_conn() as conn:
            conn.execute("DELETE FROM clients")

    log = LogContext("SEED_CLIENTS")
    log.set_payload({"seeds": args.seeds, "reset": args.reset})
    res = seed_load(args.seeds, log)
    log.write("OK")

    if args.normalize:
        nlog = LogContext("CLIENT_NORMALIZE")
        res["rewritten"] = normalize_lanes(nlog)
        nlog.write("OK")

    print({"message": "ok", "db": get_db_path(), **res})


if __name__ == "__main__":
    main()
