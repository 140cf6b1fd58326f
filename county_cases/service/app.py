"""Liveness endpoint; its lifespan owns the scheduler."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from apscheduler.schedulers.base import BaseScheduler
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from county_cases.common.constants import LIVENESS_BODY

logger = logging.getLogger(__name__)

ANY_METHOD = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def create_app(scheduler: BaseScheduler | None = None) -> FastAPI:
    @asynccontextmanager
    async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
        if scheduler is not None:
            scheduler.start()
            logger.info("scheduler started with %d jobs", len(scheduler.get_jobs()))
        try:
            yield
        finally:
            if scheduler is not None:
                scheduler.shutdown(wait=True)
                logger.info("scheduler stopped")

    application = FastAPI(title="county-cases-ingest", lifespan=_lifespan, docs_url=None, redoc_url=None, openapi_url=None)

    @application.api_route("/{path:path}", methods=ANY_METHOD, response_class=PlainTextResponse)
    async def liveness(path: str) -> PlainTextResponse:
        return PlainTextResponse(LIVENESS_BODY)

    return application
