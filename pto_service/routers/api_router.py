from fastapi import APIRouter
from pto_service.routers import pto, users, admin

# Routers are aggregated here; main.py only imports this single hub.
api_router = APIRouter()

api_router.include_router(pto.router, tags=["PTO"])
api_router.include_router(users.router, tags=["Users"])
api_router.include_router(admin.router, tags=["Administration"])
