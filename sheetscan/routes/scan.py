"""
Scan API routes
Handles answer sheet uploads and live preview frames
"""
from typing import Optional
from fastapi import APIRouter, UploadFile, File, Form
from fastapi.concurrency import run_in_threadpool

from ..schemas import (
    DetectedAnswerModel,
    FeedbackResponse,
    ResultRecordModel,
    ScanResponse,
    SheetMetadataModel,
    ValidationModel,
)
from ..core import AnswerStatus, Messages, SheetRejectedException, logger
from ..grader import MULTIPLE_MARK, NO_MARK, ScanResult
from ..services import scan_service
from ..utils import image_stem

router = APIRouter()


def _answer_status(choice: int) -> AnswerStatus:
    if choice == NO_MARK:
        return AnswerStatus.NO_MARK
    if choice == MULTIPLE_MARK:
        return AnswerStatus.MULTIPLE_MARK
    return AnswerStatus.MARKED


def to_scan_response(result: ScanResult) -> ScanResponse:
    """Convert a successful pipeline result to the API response"""
    metadata = None
    if result.metadata:
        metadata = SheetMetadataModel(
            form_variant=result.metadata.form_variant,
            set_number=result.metadata.set_number,
            seat_number=result.metadata.seat_number,
            raw_payload=result.metadata.raw_payload,
        )

    validation = None
    if result.validation:
        validation = ValidationModel(
            is_valid=result.validation.is_valid,
            reason=result.validation.reason,
            filled_count=result.validation.filled_count,
            total_count=result.validation.total_count,
        )

    return ScanResponse(
        success=True,
        message=Messages.SCAN_SUCCESS,
        image_name=result.image_name,
        layout_variant=result.layout_variant,
        metadata=metadata,
        answers=[
            DetectedAnswerModel(
                element=a.element_number,
                question=a.question_number,
                choice=a.choice,
                status=_answer_status(a.choice),
            )
            for a in result.answers
        ],
        scores={str(k): v for k, v in result.scores.items()},
        record=ResultRecordModel(**result.record.to_dict()) if result.record else None,
        validation=validation,
    )


@router.post("/image", response_model=ScanResponse)
async def scan_image(
    file: UploadFile = File(...),
    rotation: Optional[int] = Form(default=None)
):
    """
    Process one captured or imported answer sheet photo.

    A rejected sheet (not found, too skewed, too few marks, unreadable)
    returns 422 with the reason and a suggestion for the next capture.
    """
    content = await file.read()
    filename = file.filename or ""
    scan_service.validate_upload(filename, content, rotation)

    result = await scan_service.scan_image(content, image_stem(filename), rotation)
    if not result.success:
        logger.info(f"Rejected {result.image_name}: {result.error}")
        raise SheetRejectedException(result.error, result.suggestion)

    return to_scan_response(result)


@router.post("/frame", response_model=FeedbackResponse)
async def scan_frame(
    file: UploadFile = File(...),
    rotation: Optional[int] = Form(default=None)
):
    """
    Analyze one preview frame: sheet corners and skew only.
    """
    content = await file.read()
    filename = file.filename or ""
    scan_service.validate_upload(filename, content, rotation)

    feedback = await run_in_threadpool(
        scan_service.analyze_frame, content, filename, rotation
    )
    return FeedbackResponse(found=feedback.corners is not None, **feedback.to_dict())
