"""
FastAPI app entry point aggregating the routers under shiptivity/routes.
Run as `uvicorn shiptivity.api:app`.
"""
from __future__ import annotations


from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .logs import ensure_log_schema
from .services.config_svc import ensure_default_config
from .services.client_svc import ensure_client_schema


app = FastAPI(title="shiptivity-api", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def on_startup():
    ensure_log_schema()
    ensure_client_schema()
    ensure_default_config()


from .routes import base as base_routes
from .routes import clients as clients_routes
from .routes import settings as settings_routes
from .routes import logs as logs_routes

app.include_router(base_routes.router)
app.include_router(clients_routes.router)
app.include_router(settings_routes.router)
app.include_router(logs_routes.router)
