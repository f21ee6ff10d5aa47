from fastapi import APIRouter

from folio_auth.presentation.routers.v1.admin import router as admin_router
from folio_auth.presentation.routers.v1.auth import router as auth_router
from folio_auth.presentation.routers.v1.users import router as users_router
from folio_auth.presentation.routes.health import router as health_router

api = APIRouter()

# Add all v1 routers here
routers = (auth_router, users_router, admin_router)
for router in routers:
    api.include_router(router, prefix="/v1")

api.include_router(health_router)
