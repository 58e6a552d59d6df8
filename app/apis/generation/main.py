from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Request, status
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.db.schemas.auth import User
from app.core.logging import get_logger
from app.apis.deps import get_generation_pipeline
from app.modules.auth import optional_current_user
from app.modules.generation import GenerationError, GenerationPipeline
from .schemas import (
    ErrorResponse,
    GenerateQuestionsRequest,
    GenerateQuestionsResponse,
    GeneratorStatusResponse,
)


router = APIRouter()
logger = get_logger(__name__)

GENERATE_PATH = f"/{settings.app.version}/generate-questions"

# The route reads the raw body so the entitlement gate runs before field
# validation; the documented schema is attached to OpenAPI by hand.
REQUEST_BODY_DOC = {
    "requestBody": {
        "required": True,
        "content": {
            "application/json": {
                "schema": GenerateQuestionsRequest.model_json_schema(by_alias=True)
            }
        },
    }
}


@router.post(
    GENERATE_PATH,
    status_code=status.HTTP_200_OK,
    tags=["generation"],
    response_model=GenerateQuestionsResponse,
    response_model_exclude_none=True,
    openapi_extra=REQUEST_BODY_DOC,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
)
async def generate_questions(
    payload: Any = Body(...),
    user: Optional[User] = Depends(optional_current_user),
    pipeline: GenerationPipeline = Depends(get_generation_pipeline),
) -> dict[str, Any]:
    result = await pipeline.run(user, payload)
    return result.to_response()


@router.get(
    GENERATE_PATH,
    response_model=GeneratorStatusResponse,
    tags=["generation"],
)
async def generator_status() -> GeneratorStatusResponse:
    return GeneratorStatusResponse(
        status="Api route is working",
        endpoint=GENERATE_PATH,
        method="POST",
        description="Generate study questions or flashcards from notes or images",
    )


async def generation_error_handler(
    request: Request, exc: GenerationError
) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())
