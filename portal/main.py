"""FastAPI application for the admin and user portals."""
from __future__ import annotations

import logging

import psycopg2
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import app_context
from .app.errors import PortalError
from .app.routes import admin as admin_routes
from .app.routes import auth as auth_routes
from .app.routes import billing as billing_routes
from .app.routes import catalog as catalog_routes
from .app.routes import enrollments as enrollment_routes
from .app.routes import products as product_routes
from .app.routes import step_up as step_up_routes
from .app.routes import tickets as ticket_routes
from .auth import get_current_user, get_optional_current_user
from .config import get_config

load_dotenv()

logger = logging.getLogger(__name__)

config = get_config()


def get_conn():
    return psycopg2.connect(**config.database.connect_kwargs())


app_context.configure(
    get_conn=get_conn,
    get_current_user=get_current_user,
    get_optional_current_user=get_optional_current_user,
)

app = FastAPI(title="Service Portal API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(config.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_routes.router)
app.include_router(auth_routes.profile_router)
app.include_router(catalog_routes.router)
app.include_router(enrollment_routes.router)
app.include_router(enrollment_routes.dashboard_router)
app.include_router(step_up_routes.router)
app.include_router(billing_routes.router)
app.include_router(admin_routes.router)
app.include_router(product_routes.router)
app.include_router(ticket_routes.router)


@app.exception_handler(PortalError)
async def handle_portal_error(request: Request, exc: PortalError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.code)
    return JSONResponse(status_code=exc.status_code, content={"detail": dict(exc.payload)})


@app.exception_handler(psycopg2.DataError)
async def handle_data_error(request: Request, exc: psycopg2.DataError) -> JSONResponse:
    # Malformed identifiers that slip past path validation never match a row.
    logger.info("%s %s rejected by the database: %s", request.method, request.url.path, exc.pgcode)
    return JSONResponse(status_code=404, content={"detail": "Not found"})


@app.get("/healthz")
def healthz():
    return {"ok": True}
