"""
API v1 router — aggregates all endpoint sub-routers.
"""
from fastapi import APIRouter

from fleetflow.api.v1.endpoints import auth, drivers, managers
from fleetflow.api.v1.endpoints.invites import router as invites_router, accept_router

api_router = APIRouter()

api_router.include_router(auth.router)
api_router.include_router(invites_router)
api_router.include_router(accept_router)
api_router.include_router(drivers.router)
api_router.include_router(managers.router)
