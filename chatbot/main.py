from __future__ import annotations

import logging
import time
from typing import Optional
from uuid import UUID

from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse

from .config import Settings, load_settings, setup_logging
from .errors import InvalidInput, UpstreamError
from .gateway import ModelGateway, build_gateway
from .schemas import (
    ChatRequest,
    ChatResponse,
    ErrorResponse,
    HistoryResponse,
    ResetRequest,
    ResetResponse,
    TurnOut,
)
from .session import ChatSession
from .sse import SSE_HEADERS, SSE_MEDIA_TYPE, event_stream
from .store import HistoryStore

logger = logging.getLogger(__name__)


def _validation_details(exc: RequestValidationError):
    return [
        {"loc": [str(p) for p in err.get("loc", ())], "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[HistoryStore] = None,
    gateway: Optional[ModelGateway] = None,
) -> FastAPI:
    settings = settings or load_settings()
    store = store if store is not None else HistoryStore()
    gateway = gateway or build_gateway(settings)
    session = ChatSession(store, gateway, empty_reply_placeholder=settings.empty_reply_placeholder)
    started = time.monotonic()

    app = FastAPI(title="Streaming Chat Bot", version="0.1.0")
    app.state.settings = settings
    app.state.store = store
    app.state.session = session

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        ip = request.headers.get("x-forwarded-for") or (request.client.host if request.client else "-")
        logger.info("%s %s - ip=%s", request.method, request.url.path, ip)
        return await call_next(request)

    @app.exception_handler(RequestValidationError)
    async def validation_error(_request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"errors": _validation_details(exc)})

    @app.exception_handler(InvalidInput)
    async def invalid_input(_request: Request, exc: InvalidInput):
        return JSONResponse(status_code=400, content={"errors": [{"loc": ["body"], "msg": str(exc), "type": "invalid_input"}]})

    @app.exception_handler(UpstreamError)
    async def upstream_error(_request: Request, exc: UpstreamError):
        return JSONResponse(status_code=500, content=ErrorResponse(error="Something went wrong").model_dump())

    @app.get("/", response_class=PlainTextResponse)
    def root():
        return "Hello World !"

    @app.get("/api/hello")
    def hello():
        return {"message": "Hello World !"}

    @app.get("/health")
    def health():
        return {
            "status": "ok",
            "uptime": round(time.monotonic() - started, 3),
            "backend": gateway.name,
            "conversations": len(store),
        }

    @app.post("/api/chat", response_model=ChatResponse, responses={500: {"model": ErrorResponse}})
    def chat(payload: ChatRequest):
        reply = session.reply(payload.prompt, str(payload.conversation_id))
        return ChatResponse(reply=reply)

    @app.post("/api/chat/stream")
    def chat_stream(payload: ChatRequest):
        fragments = session.stream_reply(payload.prompt, str(payload.conversation_id))
        return StreamingResponse(event_stream(fragments), media_type=SSE_MEDIA_TYPE, headers=SSE_HEADERS)

    @app.post("/api/reset", response_model=ResetResponse)
    def reset(payload: ResetRequest):
        session.reset(str(payload.conversation_id))
        return ResetResponse()

    @app.get("/api/history", response_model=HistoryResponse)
    def history(conversation_id: UUID = Query(..., alias="conversationID")):
        turns = store.get(str(conversation_id))
        return HistoryResponse(
            conversation_id=str(conversation_id),
            turns=[TurnOut(**t.to_dict()) for t in turns],
        )

    return app


def run() -> None:
    import uvicorn

    settings = load_settings()
    setup_logging(settings.log_level)
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
