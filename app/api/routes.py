"""
FastAPI routes for the GitHub connection callback.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import RedirectResponse

from app.dependencies import (
    get_callback_pipeline,
    get_outcome_classifier,
    get_session_store,
)
from app.schemas import OAuthCallbackParams
from app.services import (
    GitHubCallbackPipeline,
    OutcomeClassifier,
    SessionHandle,
    SessionStore,
)
from app.utils.http import CALLBACK_PATH, callback_continuation, callback_redirect_uri

router = APIRouter()
oauth_router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@oauth_router.get(CALLBACK_PATH, response_class=RedirectResponse)
async def handle_github_oauth_callback(
    request: Request,
    pipeline: Annotated[GitHubCallbackPipeline, Depends(get_callback_pipeline)],
    classifier: Annotated[OutcomeClassifier, Depends(get_outcome_classifier)],
    session_store: Annotated[SessionStore, Depends(get_session_store)],
    code: Optional[str] = Query(default=None, description="Authorization code returned by GitHub."),
    state: Optional[str] = Query(default=None, description="Opaque OAuth state envelope."),
    error: Optional[str] = Query(default=None, description="Error reported by GitHub."),
) -> RedirectResponse:
    """
    Complete a GitHub connection and redirect back to the integrations settings.

    Every outcome, including failures, is a redirect.
    """
    session = SessionHandle(session_store, request)
    outcome = await pipeline.handle(
        OAuthCallbackParams(code=code, state=state, error=error),
        redirect_uri=callback_redirect_uri(request),
        continuation=callback_continuation(request),
        session=session,
    )
    logger.info(
        "GitHub callback finished: kind=%s reason=%s",
        outcome.kind.value,
        outcome.reason.value,
    )

    response = RedirectResponse(
        url=classifier.classify(outcome), status_code=HTTPStatus.FOUND
    )
    session.apply(response)
    return response
