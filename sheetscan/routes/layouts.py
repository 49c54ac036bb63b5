"""
Layout API routes
Read-only access to the exam layouts known to the scanner
"""
from fastapi import APIRouter

from ..schemas import LayoutListResponse, LayoutResponse
from ..services import scan_service

router = APIRouter()


@router.get("", response_model=LayoutListResponse)
async def list_layouts():
    """List layout variants; unknown variants fall back to the default layout"""
    return LayoutListResponse(**scan_service.list_layouts())


@router.get("/{variant}", response_model=LayoutResponse)
async def get_layout(variant: str):
    """Get one layout by variant code, or 'default'"""
    layout = scan_service.get_layout(variant)
    return LayoutResponse(total_bubbles=layout.total_bubbles, **layout.to_dict())
