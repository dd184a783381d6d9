from fastapi import APIRouter

from humanivio.api import health, humanize

router = APIRouter()
router.include_router(humanize.router, tags=["humanize"])
router.include_router(health.router, tags=["health"])
