from fastapi import Depends, Request, Response

from humanivio.core.config import Settings
from humanivio.core.errors import QuotaExceededError
from humanivio.core.logging import get_logger
from humanivio.core.rate_limit import QuotaDecision, QuotaStore
from humanivio.services.rewriter import RewriteService
from humanivio.utils.http import client_ip

logger = get_logger(__name__)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_quota_store(request: Request) -> QuotaStore:
    return request.app.state.quota_store


def get_rewrite_service(request: Request) -> RewriteService:
    return request.app.state.rewrite_service


async def enforce_quota(
    request: Request,
    response: Response,
    settings: Settings = Depends(get_app_settings),
    store: QuotaStore = Depends(get_quota_store),
) -> QuotaDecision:
    ip = client_ip(request, trust_proxy_headers=settings.trust_proxy_headers)
    decision = await store.admit(ip)
    if not decision.allowed:
        logger.warning("quota_rejected", client_ip=ip, reset_seconds=decision.reset_seconds)
        raise QuotaExceededError(retry_after=decision.reset_seconds)

    response.headers["X-RateLimit-Limit"] = str(settings.daily_request_limit)
    response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
    return decision
