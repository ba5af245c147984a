from fastapi import APIRouter

from pipeyard.routers import documents, health, trucking

api_router = APIRouter()

api_router.include_router(health.router, tags=["Health"])
api_router.include_router(trucking.router, tags=["Trucking"])
api_router.include_router(documents.router, tags=["Documents"])
