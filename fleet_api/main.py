"""Fleet driver FastAPI application."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fleet_api.api import health, sos, ws
from fleet_api.core.config import settings
from fleet_api.core.deps import close_sos_pipeline


@asynccontextmanager
async def lifespan(_: FastAPI):
    yield
    await close_sos_pipeline()


app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    lifespan=lifespan,
)

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_credentials=True,
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(sos.router)
app.include_router(ws.router)
