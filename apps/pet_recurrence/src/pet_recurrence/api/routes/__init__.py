"""API v1 router registration."""

from fastapi import APIRouter

from pet_recurrence.api.routes import recurrence_rules

v1_router = APIRouter(prefix="/v1")
v1_router.include_router(recurrence_rules.router)
