"""API routes."""

from fastapi import APIRouter

from app.routes import ads

api_router = APIRouter()

# Ads CRUD
api_router.include_router(ads.router, prefix="/ads", tags=["ads"])
