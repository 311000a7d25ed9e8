"""API v1 router aggregating all endpoints."""

from fastapi import APIRouter

from app.api.v1 import ai, community, me, mind_reset, storage, subscription, usage

api_router = APIRouter()

api_router.include_router(storage.router, prefix="/storage", tags=["storage"])
api_router.include_router(usage.router, prefix="/usage", tags=["usage"])
api_router.include_router(subscription.router, prefix="/subscription", tags=["subscription"])
api_router.include_router(ai.router, prefix="/ai", tags=["ai"])
api_router.include_router(community.router, prefix="/community", tags=["community"])
api_router.include_router(mind_reset.router, prefix="/mind-reset", tags=["mind-reset"])
api_router.include_router(me.router, prefix="/me", tags=["me"])
