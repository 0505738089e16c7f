"""
Service endpoints
=================

GET /api/v1/admin         -- welcome message
GET /api/v1/admin/health  -- simple health check
"""

from fastapi import APIRouter

from taxe.api.schemas import HealthResponse, MessageResponse

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("", response_model=MessageResponse, summary="Welcome message")
async def welcome():
    return MessageResponse(message="Welcome to the Tax-E REST API")


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
