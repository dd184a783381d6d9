from __future__ import annotations

import time

from fastapi import APIRouter, Depends, Request

from humanivio.api.deps import enforce_quota, get_app_settings, get_rewrite_service
from humanivio.core.config import Settings
from humanivio.core.logging import get_logger
from humanivio.core.rate_limit import QuotaDecision
from humanivio.schemas.common import ErrorResponse
from humanivio.schemas.humanize import HumanizeResponse
from humanivio.services.rewriter import RewriteService
from humanivio.services.shaper import shape_response
from humanivio.services.validation import validate_text
from humanivio.utils.request_body import read_json_body

router = APIRouter()
logger = get_logger(__name__)


@router.post(
    "/humanize",
    response_model=HumanizeResponse,
    responses={
        400: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def humanize_text(
    request: Request,
    _quota: QuotaDecision = Depends(enforce_quota),
    settings: Settings = Depends(get_app_settings),
    rewriter: RewriteService = Depends(get_rewrite_service),
) -> HumanizeResponse:
    payload = await read_json_body(request)
    validated = validate_text(payload.get("text"), max_words=settings.max_words)
    logger.info("humanize_request_received", word_count=validated.word_count)

    start = time.perf_counter()
    rewritten = await rewriter.rewrite(validated.text)
    result = shape_response(validated.text, rewritten)

    logger.info(
        "humanize_completed",
        original_word_count=result.original_word_count,
        humanized_word_count=result.humanized_word_count,
        latency_ms=round((time.perf_counter() - start) * 1000, 3),
    )
    return result
