from fastapi import APIRouter

from api import pages
from api.v1 import ai, auth, feedback, i18n, live_hub, product, schedule

# 统一前缀
api_router = APIRouter(prefix="/api/v1")

api_router.include_router(auth.router)
api_router.include_router(product.router)
api_router.include_router(schedule.router)
api_router.include_router(feedback.router)
api_router.include_router(live_hub.router)
api_router.include_router(ai.router)
api_router.include_router(i18n.router)

page_router = pages.router
