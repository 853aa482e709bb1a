"""
Analysis API endpoints.

Provides endpoints for:
- Accepting a detected diff for analysis (runs after the response is sent)
- Testing a user's AI provider connection
- Sending a test notification email
"""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from changewatch.analysis.connection_test import ConnectionTestResult, check_ai_connection
from changewatch.analysis.errors import ConfigurationError
from changewatch.api.dependencies import get_client, get_pipeline, get_queue, get_store
from changewatch.contracts import HTTPClient
from changewatch.notifications.email_check import request_test_email
from changewatch.notifications.queue import TaskQueue
from changewatch.observability.logging import get_logger
from changewatch.pipeline import AnalysisInvocation, AnalysisPipeline
from changewatch.storage.memory import InMemoryStore

router = APIRouter(prefix="/api", tags=["analysis"])
logger = get_logger(__name__)


# ============================================================================
# Request/Response Models
# ============================================================================


class UserRequest(BaseModel):
    """API request identifying the acting user."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId")


class AcceptedResponse(BaseModel):
    status: str = "accepted"
    result_id: str


class EmailTestResponse(BaseModel):
    success: bool
    message: str


# ============================================================================
# Endpoints
# ============================================================================


@router.post("/analysis", response_model=AcceptedResponse, status_code=status.HTTP_202_ACCEPTED)
async def submit_analysis(
    invocation: AnalysisInvocation,
    background_tasks: BackgroundTasks,
    pipeline: AnalysisPipeline = Depends(get_pipeline),
) -> AcceptedResponse:
    """
    Accept one diff for AI analysis.

    The run happens after the response is sent; its outcome is logged, never
    returned, so ingestion is not blocked by AI availability.
    """
    background_tasks.add_task(pipeline.run, invocation)
    logger.info("Accepted analysis for result %s (%s)", invocation.result_id, invocation.website_name)
    return AcceptedResponse(result_id=invocation.result_id)


@router.post("/ai/test", response_model=ConnectionTestResult)
def test_ai_model(
    request: UserRequest,
    store: InMemoryStore = Depends(get_store),
    client: HTTPClient = Depends(get_client),
) -> ConnectionTestResult:
    """Check the user's AI credentials with a minimal request."""
    try:
        return check_ai_connection(store.get_user_settings(request.user_id), client)
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.post("/email/test", response_model=EmailTestResponse)
def test_email_sending(
    request: UserRequest,
    store: InMemoryStore = Depends(get_store),
    queue: TaskQueue = Depends(get_queue),
) -> EmailTestResponse:
    """Schedule a test email to the user's verified address."""
    try:
        message = request_test_email(request.user_id, store, store, queue)
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return EmailTestResponse(success=True, message=message)
