"""
Client board endpoints.

GET  /api/v1/clients?status={status}  list clients, optional lane filter
GET  /api/v1/clients/{client_id}      one client
PUT  /api/v1/clients/{client_id}      change status and/or priority; returns the whole board
POST /api/v1/clients/normalize        renumber every lane to 1..n
GET  /api/v1/lanes/check              report duplicate or missing priorities per lane
"""
from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from ..logs import LogContext
from ..domain.lane_engine import ErrorKind, ReorderError
from ..services.client_svc import list_clients, get_client
from ..services.lane_svc import reorder_client, normalize_lanes, check_lanes

router = APIRouter()

_HTTP_STATUS = {
    ErrorKind.INVALID_ID: 400,
    ErrorKind.INVALID_STATUS: 400,
    ErrorKind.INVALID_PRIORITY: 400,
    ErrorKind.EMPTY_LANE: 409,
    ErrorKind.STORE_TRANSACTION_FAILED: 500,
}


def _http_error(e: ReorderError) -> HTTPException:
    return HTTPException(status_code=_HTTP_STATUS[e.kind], detail=e.to_dict())


class ClientUpdate(BaseModel):
    # Any: shape is checked by the lane engine so bad values map to InvalidStatus/InvalidPriority
    status: Optional[Any] = None
    priority: Optional[Any] = None


@router.get("/api/v1/clients")
def api_clients_list(status: Optional[str] = None):
    try:
        return list_clients(status)
    except ReorderError as e:
        raise _http_error(e)


@router.get("/api/v1/lanes/check")
def api_lanes_check():
    violations = check_lanes()
    return {"ok": not any(violations.values()), "violations": violations}


@router.post("/api/v1/clients/normalize")
def api_clients_normalize():
    log = LogContext("CLIENT_NORMALIZE")
    try:
        rewritten = normalize_lanes(log)
        log.write("OK")
        return {"message": "ok", "rewritten": rewritten}
    except ReorderError as e:
        log.write("ERROR", str(e))
        raise _http_error(e)


@router.get("/api/v1/clients/{client_id}")
def api_clients_get(client_id: str):
    try:
        return get_client(client_id)
    except ReorderError as e:
        raise _http_error(e)


@router.put("/api/v1/clients/{client_id}")
def api_clients_update(client_id: str, body: Optional[ClientUpdate] = None):
    body = body or ClientUpdate()
    log = LogContext("CLIENT_REORDER")
    log.set_payload({"id": client_id, **body.dict()})
    try:
        clients = reorder_client(client_id, body.status, body.priority, log)
        log.write("OK")
        return clients
    except ReorderError as e:
        log.write("ERROR", str(e))
        raise _http_error(e)
