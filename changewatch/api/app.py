"""FastAPI server for changewatch"""

from __future__ import annotations

from typing import Any

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from changewatch.analysis.client import AIClient
from changewatch.api.dependencies import register_default_senders
from changewatch.api.routes.analysis import router as analysis_router
from changewatch.api.routes.health import router as health_router
from changewatch.config import API_HOST, API_PORT, APP_NAME, APP_VERSION, is_production
from changewatch.contracts import HTTPClient
from changewatch.notifications.queue import TaskQueue
from changewatch.observability.logging import get_logger
from changewatch.observability.telemetry import counter, log_event
from changewatch.pipeline import AnalysisPipeline
from changewatch.storage.memory import InMemoryStore

# Load environment variables from .env file
load_dotenv()

logger = get_logger(__name__)


def create_app(
    store: InMemoryStore | None = None,
    queue: TaskQueue | None = None,
    client: HTTPClient | None = None,
) -> FastAPI:
    """
    Build the API app around a store, a dispatch queue and an AI client.

    Task kinds without a registered sender get a logging handler.
    """
    store = store or InMemoryStore()
    queue = queue or TaskQueue()
    register_default_senders(queue)

    app = FastAPI(
        title=f"{APP_NAME} API",
        version=APP_VERSION,
        docs_url=None if is_production() else "/docs",
    )
    app.state.store = store
    app.state.queue = queue
    app.state.client = client or AIClient()
    app.state.pipeline = AnalysisPipeline(
        settings_store=store,
        result_store=store,
        website_store=store,
        email_store=store,
        queue=queue,
        client=app.state.client,
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Return field names only, without echoing submitted values."""
        logger.warning("Validation error on %s: %d errors", request.url.path, len(exc.errors()))
        counter("api.validation_errors")
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "detail": "Invalid request format. Please check your request and try again.",
                "error_count": len(exc.errors()),
                "invalid_fields": [str(err["loc"][-1]) for err in exc.errors()],
            },
        )

    @app.on_event("shutdown")
    def _shutdown_queue() -> None:
        queue.shutdown(wait=True)

    app.include_router(health_router)
    app.include_router(analysis_router)

    @app.get("/")
    def root() -> dict[str, Any]:
        return {
            "service": f"{APP_NAME} API",
            "version": APP_VERSION,
            "status": "running",
            "endpoints": {
                "health": "/health",
                "analysis": "/api/analysis",
                "ai_test": "/api/ai/test",
                "email_test": "/api/email/test",
            },
        }

    log_event("api.startup", service=APP_NAME, version=APP_VERSION)
    return app


app = create_app()


def main() -> None:
    """Run the API with uvicorn."""
    uvicorn.run("changewatch.api.app:app", host=API_HOST, port=API_PORT)


if __name__ == "__main__":
    main()
