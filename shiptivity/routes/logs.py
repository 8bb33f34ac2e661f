from __future__ import annotations

from fastapi import APIRouter, HTTPException

from ..logs import search_operation_logs, client_move_history
from ..domain.lane_engine import ReorderError, parse_id

router = APIRouter()


@router.get("/api/logs/search")
def api_logs_search(
    page: int = 1,
    size: int = 20,
    action: str | None = None,
    query: str | None = None,
    client_id: str | None = None,
    ts_from: str | None = None,
    ts_to: str | None = None,
):
    try:
        cid = parse_id(client_id) if client_id is not None else None
    except ReorderError as e:
        raise HTTPException(status_code=400, detail=e.to_dict())
    total, items = search_operation_logs(query, action, cid, ts_from, ts_to, page, size)
    return {"total": total, "items": items}


@router.get("/api/logs/clients/{client_id}/moves")
def api_logs_client_moves(client_id: str, limit: int = 50):
    """Every lane position change of one client, including shifts caused by other moves."""
    try:
        cid = parse_id(client_id)
    except ReorderError as e:
        raise HTTPException(status_code=400, detail=e.to_dict())
    return {"client_id": cid, "items": client_move_history(cid, limit)}
