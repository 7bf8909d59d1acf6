"""FastAPI dependency injection helpers."""
from __future__ import annotations

from typing import Annotated

from fastapi import Depends
from starlette.requests import HTTPConnection

from relay_service.infrastructure.ws.registry import ConnectionRegistry
from relay_service.services.media_ingestion import MediaIngestionPipeline
from relay_service.services.message_relay import MessageRelay


def get_relay(conn: HTTPConnection) -> MessageRelay:
    return conn.app.state.relay


def get_pipeline(conn: HTTPConnection) -> MediaIngestionPipeline:
    return conn.app.state.pipeline


def get_registry(conn: HTTPConnection) -> ConnectionRegistry:
    return conn.app.state.registry


RelayDep = Annotated[MessageRelay, Depends(get_relay)]
PipelineDep = Annotated[MediaIngestionPipeline, Depends(get_pipeline)]
RegistryDep = Annotated[ConnectionRegistry, Depends(get_registry)]
