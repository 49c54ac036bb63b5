"""
Pydantic schemas for API request/response models
"""
from pydantic import BaseModel, Field
from typing import List, Dict, Optional, Any

from .core import AnswerStatus


# ===== Scan Schemas =====
class SheetMetadataModel(BaseModel):
    form_variant: Optional[str] = None
    set_number: Optional[int] = None
    seat_number: Optional[int] = None
    raw_payload: str = ""


class DetectedAnswerModel(BaseModel):
    element: int
    question: int
    choice: int = Field(..., description="Choice index, -1 for no mark, -2 for multiple marks")
    status: AnswerStatus


class ValidationModel(BaseModel):
    is_valid: bool
    reason: str
    filled_count: int
    total_count: int


class ResultRecordModel(BaseModel):
    id: Optional[int] = None
    form_variant: Optional[str] = None
    set_number: Optional[int] = None
    seat_number: Optional[int] = None
    total_score: int = 0
    element_scores: Dict[int, int] = {}
    max_scores: Dict[int, int] = {}
    timestamp: str


class ScanResponse(BaseModel):
    success: bool = True
    message: str
    image_name: str = ""
    layout_variant: Optional[str] = None
    metadata: Optional[SheetMetadataModel] = None
    answers: List[DetectedAnswerModel] = []
    scores: Dict[str, int] = {}
    record: Optional[ResultRecordModel] = None
    validation: Optional[ValidationModel] = None


class FeedbackResponse(BaseModel):
    found: bool
    corners: Optional[List[List[float]]] = Field(
        default=None, description="Normalized TL, TR, BR, BL corners in [0, 1]"
    )
    is_skewed: bool = False


# ===== Layout Schemas =====
class LayoutColumnModel(BaseModel):
    name: str
    element: int
    start_x: float
    width: float
    start_y: float
    height: float
    question_start: int = 1


class LayoutResponse(BaseModel):
    variant: str
    columns: List[LayoutColumnModel]
    questions_per_column: int
    choices: int
    total_bubbles: int


class LayoutListResponse(BaseModel):
    variants: List[str]
    default: str
    total: int


# ===== Answer Key Schemas =====
class AnswerKeyRequest(BaseModel):
    answers: Dict[int, int] = Field(..., description="Question number -> correct choice index")


class AnswerKeyResponse(BaseModel):
    element: int
    answers: Dict[int, int]
    count: int


class AnswerKeyListResponse(BaseModel):
    elements: List[int]
    total: int


# ===== Result Schemas =====
class ResultListResponse(BaseModel):
    results: List[ResultRecordModel]
    total: int


class MessageResponse(BaseModel):
    success: bool = True
    message: str
    data: Optional[Dict[str, Any]] = None
