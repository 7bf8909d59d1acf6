from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from relay_service.api.middleware.correlation_id import CorrelationIdMiddleware
from relay_service.api.middleware.metrics import RequestTimingMiddleware
from relay_service.api.middleware.upload_limit import UploadSizeLimitMiddleware
from relay_service.api.v1.routers import health, messages, uploads, ws
from relay_service.application.dto.message import message_from_wire, message_to_wire
from relay_service.application.exceptions import (
    PersistenceError,
    UploadError,
    ValidationError,
    describe_errors,
)
from relay_service.application.ports.clock import Clock, SystemClock
from relay_service.application.ports.storage import BlobStore
from relay_service.application.repositories.message import MessageLog
from relay_service.config import settings
from relay_service.domain.value_objects.enums import DeliveryPolicy, MediaClass
from relay_service.infrastructure.bus.redis_pubsub import (
    OnEventCallback,
    RedisPubSubPublisher,
    RedisPubSubSubscriber,
)
from relay_service.infrastructure.db.repositories.message import SqlAlchemyMessageLog
from relay_service.infrastructure.db.session import (
    build_engine,
    build_session_factory,
    create_schema,
)
from relay_service.infrastructure.storage.gcs import build_blob_store
from relay_service.infrastructure.ws.protocol import RECEIVE_MESSAGE, WsOutbound
from relay_service.infrastructure.ws.registry import ConnectionRegistry
from relay_service.services.media_ingestion import MediaIngestionPipeline
from relay_service.services.message_relay import MessageRelay

logger = logging.getLogger(__name__)


def _remote_event_handler(registry: ConnectionRegistry) -> OnEventCallback:
    """Re-broadcast messages relayed by other instances to local connections."""

    async def _on_event(event_type: str, data: dict[str, Any]) -> None:
        if event_type != RECEIVE_MESSAGE:
            return
        message = message_from_wire(data)
        raw = WsOutbound(type=RECEIVE_MESSAGE, data=message_to_wire(message)).model_dump_json()
        await registry.broadcast(raw)

    return _on_event


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle.

    Collaborators injected through ``create_app`` are used as-is; the rest
    are built from settings. Any failure here aborts startup.
    """
    state = app.state

    if state.message_log is None:
        state.engine = build_engine(settings)
        if settings.DB_CREATE_SCHEMA:
            await create_schema(state.engine)
        state.message_log = SqlAlchemyMessageLog(
            build_session_factory(state.engine),
            timeout=settings.DB_OP_TIMEOUT_SECONDS,
        )
        logger.info("Database engine created")

    if state.blob_store is None:
        state.blob_store = build_blob_store(settings)
        logger.info("Blob store ready (bucket=%s)", settings.GCS_BUCKET)

    publisher: RedisPubSubPublisher | None = None
    subscriber: RedisPubSubSubscriber | None = None
    if settings.FANOUT_ENABLED:
        state.redis = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
        await state.redis.ping()
        publisher = RedisPubSubPublisher(
            state.redis, settings.REDIS_PUBSUB_CHANNEL, state.instance_id,
        )
        subscriber = RedisPubSubSubscriber(
            state.redis,
            settings.REDIS_PUBSUB_CHANNEL,
            state.instance_id,
            _remote_event_handler(state.registry),
        )
        await subscriber.start()

    state.relay = MessageRelay(
        state.message_log,
        state.registry,
        state.clock,
        policy=DeliveryPolicy(settings.DELIVERY_POLICY),
        fanout=publisher,
        history_limit=settings.HISTORY_LIMIT,
        history_max_limit=settings.HISTORY_MAX_LIMIT,
    )
    state.pipeline = MediaIngestionPipeline(
        state.blob_store,
        state.clock,
        {
            MediaClass.IMAGE: settings.IMAGE_MAX_BYTES,
            MediaClass.VIDEO: settings.VIDEO_MAX_BYTES,
        },
        timeout=settings.UPLOAD_TIMEOUT_SECONDS,
    )
    logger.info(
        "Relay %s ready (policy=%s, fanout=%s)",
        state.instance_id,
        settings.DELIVERY_POLICY,
        settings.FANOUT_ENABLED,
    )

    yield

    if subscriber is not None:
        await subscriber.stop()
    if state.redis is not None:
        await state.redis.aclose()
        logger.info("Redis connection pool closed")
    if state.engine is not None:
        await state.engine.dispose()
        logger.info("Database engine disposed")


def create_app(
    *,
    message_log: MessageLog | None = None,
    blob_store: BlobStore | None = None,
    clock: Clock | None = None,
) -> FastAPI:
    app = FastAPI(
        title="Relay Service",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.instance_id = uuid.uuid4().hex
    app.state.registry = ConnectionRegistry(send_timeout=settings.WS_SEND_TIMEOUT_SECONDS)
    app.state.clock = clock or SystemClock()
    app.state.message_log = message_log
    app.state.blob_store = blob_store
    app.state.engine = None
    app.state.redis = None

    app.add_middleware(UploadSizeLimitMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )
    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(messages.router)
    app.include_router(uploads.router)
    app.include_router(ws.router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": exc.detail})

    @app.exception_handler(UploadError)
    async def _upload(_req: Request, exc: UploadError) -> JSONResponse:
        # detail is a generic per-class message; the cause was logged at the source
        return JSONResponse(status_code=500, content={"error": exc.detail})

    @app.exception_handler(PersistenceError)
    async def _persistence(_req: Request, exc: PersistenceError) -> JSONResponse:
        logger.error("Message store failure: %s", exc.detail)
        return JSONResponse(status_code=500, content={"error": "Failed to load messages"})

    @app.exception_handler(RequestValidationError)
    async def _bad_request(_req: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": _request_error_reason(exc)})


def _request_error_reason(exc: RequestValidationError) -> str:
    errors = exc.errors()
    for err in errors:
        # a form field named after a media class that is not a file
        loc = tuple(err.get("loc", ()))
        if len(loc) == 2 and loc[0] == "body" and loc[1] in tuple(MediaClass):
            return f"No {loc[1]}"
    return describe_errors(errors)
