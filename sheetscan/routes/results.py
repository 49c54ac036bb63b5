"""
Result API routes
Records of the sheets scanned by this process
"""
from fastapi import APIRouter

from ..schemas import MessageResponse, ResultListResponse, ResultRecordModel
from ..core import Messages
from ..services import scan_service

router = APIRouter()


@router.get("", response_model=ResultListResponse)
async def list_results():
    """List results, one per (variant, set, seat), oldest first"""
    records = scan_service.list_results()
    return ResultListResponse(
        results=[ResultRecordModel(**r.to_dict()) for r in records],
        total=len(records),
    )


@router.delete("", response_model=MessageResponse)
async def clear_results():
    count = scan_service.clear_results()
    return MessageResponse(message=Messages.RESULTS_CLEARED, data={"count": count})
