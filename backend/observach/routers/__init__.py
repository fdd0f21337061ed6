from observach.routers.auth import router as auth_router
from observach.routers.observations import router as observations_router
from observach.routers.admin import router as admin_router

__all__ = ["auth_router", "observations_router", "admin_router"]
