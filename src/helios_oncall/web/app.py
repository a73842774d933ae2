"""
FastAPI application factory.

Mounts the on-call router and makes sure the schema exists. Serve it with
any ASGI server, e.g. ``helios_oncall.web.app:create_app`` as a factory.
"""

from __future__ import annotations

from fastapi import FastAPI

from ..infra.db import create_schema
from ..infra.logging import configure_logging
from .api import router


def create_app(*, init_schema: bool = True) -> FastAPI:
    configure_logging()
    if init_schema:
        create_schema()
    app = FastAPI(title="Helios on-call", version="0.1.0")
    app.include_router(router)
    return app
