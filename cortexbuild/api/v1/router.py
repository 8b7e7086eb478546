from fastapi import APIRouter
from cortexbuild.api.v1.routes import subscriptions, usage, notifications, navigation

api_router = APIRouter()

api_router.include_router(subscriptions.router, prefix="/subscriptions", tags=["subscriptions"])
api_router.include_router(usage.router, prefix="/usage", tags=["usage"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
api_router.include_router(navigation.router, prefix="/navigation", tags=["navigation"])
