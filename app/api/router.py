from fastapi import APIRouter

from api.routes.system import router as system_router
from modules.notifications.controllers import (
    delivery_router,
    queue_router,
    router as notifications_router,
)

api_router = APIRouter()

api_router.include_router(system_router)
api_router.include_router(notifications_router)
api_router.include_router(queue_router)
api_router.include_router(delivery_router)
