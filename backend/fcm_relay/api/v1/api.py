from fastapi import APIRouter

from fcm_relay.api.v1.endpoints import health, push

api_router = APIRouter()
api_router.include_router(push.router, tags=["push"])
api_router.include_router(health.router, tags=["health"])
