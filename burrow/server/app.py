import time
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from burrow import __version__
from burrow.bus import BusClosed, InboundMessage
from burrow.events import AuditType
from burrow.logging import configure_logging, get_logger
from burrow.server.runtime import Runtime
from burrow.types import Message, Role

_logger = get_logger(__name__)

HTTP_CHANNEL = "http"


class MessageRequest(BaseModel):
    message: str
    session_key: str | None = None


class MessageAccepted(BaseModel):
    id: str
    status: str = "accepted"


def create_app(runtime: Runtime, manage_lifecycle: bool = True) -> FastAPI:
    started_at = time.time()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if manage_lifecycle:
            configure_logging(runtime.config.log_level)
            await runtime.connect()
            runtime.start()
        yield
        if manage_lifecycle:
            await runtime.close()

    app = FastAPI(
        title="burrow",
        description="Conversational agent runtime - HTTP gateway",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.runtime = runtime

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/api/status")
    async def status():
        return {
            "status": "running" if runtime.running else "idle",
            "version": __version__,
            "uptime_seconds": int(time.time() - started_at),
            "model": runtime.config.model,
            "tools": len(runtime.tools),
            "skills": runtime.skills.names,
            "subscribers": runtime.bus.receiver_count,
        }

    @app.post("/api/message", response_model=MessageAccepted)
    async def post_message(request: MessageRequest):
        session_key = request.session_key or f"{HTTP_CHANNEL}:{uuid4()}"
        message = Message.new(HTTP_CHANNEL, session_key, Role.USER, request.message)
        try:
            runtime.bus.publish(InboundMessage(message))
        except BusClosed:
            raise HTTPException(status_code=503, detail="Agent is shutting down")
        _logger.info("Accepted inbound message", id=str(message.id), session=session_key)
        return MessageAccepted(id=str(message.id))

    @app.get("/api/metrics")
    async def metrics():
        return {**runtime.metrics.snapshot(), "tools": runtime.tools.metrics}

    @app.get("/api/audit")
    async def audit(limit: int = 50, type: AuditType | None = None):
        if runtime.audit is None:
            raise HTTPException(status_code=503, detail="Audit log not connected")
        entries = await runtime.audit.recent(limit=limit, type=type)
        return {
            "events": [
                {
                    "type": e.type,
                    "session_key": e.session_key,
                    "payload": e.payload,
                    "created_at": e.created_at.isoformat(),
                }
                for e in entries
            ]
        }

    @app.get("/tools")
    async def list_tools():
        permission = runtime.context.allowed_tools()
        return {"tools": runtime.tools.list_definitions_for(permission)}

    return app


def create_default_app() -> FastAPI:
    return create_app(Runtime())
