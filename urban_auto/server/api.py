"""
HTTP surface for the server-side handlers.

    POST /api/auth/signup                {name, email, phone, password}
    POST /api/notifications/broadcast    {title, body}

The handlers live on ``app.state`` and do their own field validation, so
request bodies are modelled with every field optional and a missing field
gets the handler's 400 body rather than a framework 422.
"""

import logging
from typing import Optional

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from urban_auto.backend.memory import InMemoryBackend
from urban_auto.backend.supabase import create_admin_clients
from urban_auto.config import AppConfig, settings
from urban_auto.server.notifications import BroadcastHandler
from urban_auto.server.signup import SignupHandler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Urban Auto"])


class SignupRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    password: Optional[str] = None


class BroadcastRequest(BaseModel):
    title: Optional[str] = None
    body: Optional[str] = None


@router.post("/auth/signup")
async def signup(payload: SignupRequest, req: Request) -> JSONResponse:
    handler: SignupHandler = req.app.state.signup_handler
    status, body = await handler.handle(payload.model_dump())
    return JSONResponse(status_code=status, content=body)


@router.post("/notifications/broadcast")
async def broadcast(payload: BroadcastRequest, req: Request) -> JSONResponse:
    handler: Optional[BroadcastHandler] = req.app.state.broadcast_handler
    if handler is None:
        raise HTTPException(status_code=503, detail="Push notifications are not configured")
    status, body = await handler.handle(payload.model_dump())
    return JSONResponse(status_code=status, content=body)


def create_server(
    signup_handler: SignupHandler,
    broadcast_handler: Optional[BroadcastHandler] = None,
    config: AppConfig = settings,
) -> FastAPI:
    app = FastAPI(title=f"{config.app_name} server")
    app.state.signup_handler = signup_handler
    app.state.broadcast_handler = broadcast_handler
    app.include_router(router)
    return app


def create_in_memory_server(backend: InMemoryBackend, config: AppConfig = settings) -> FastAPI:
    """Server over an ``InMemoryBackend``, including its push gateway."""
    return create_server(
        SignupHandler(backend.admin, backend.profile_table, clock=backend.clock),
        BroadcastHandler(backend.push),
        config=config,
    )


def create_hosted_server(config: AppConfig = settings) -> FastAPI:
    """Server using service-role clients for the hosted backend. Broadcast is not mounted."""
    admin, profiles = create_admin_clients(config.backend)
    logger.info("Signup endpoint using %s", config.backend.url)
    return create_server(SignupHandler(admin, profiles), config=config)
