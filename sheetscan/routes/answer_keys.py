"""
Answer key API routes
Manages the per-element answer keys used for scoring
"""
from fastapi import APIRouter

from ..schemas import (
    AnswerKeyListResponse,
    AnswerKeyRequest,
    AnswerKeyResponse,
    MessageResponse,
)
from ..core import Messages
from ..services import scan_service

router = APIRouter()


@router.get("", response_model=AnswerKeyListResponse)
async def list_answer_keys():
    """List elements that have an answer key"""
    elements = scan_service.list_answer_keys()
    return AnswerKeyListResponse(elements=elements, total=len(elements))


@router.get("/{element}", response_model=AnswerKeyResponse)
async def get_answer_key(element: int):
    answers = scan_service.get_answer_key(element)
    return AnswerKeyResponse(element=element, answers=answers, count=len(answers))


@router.put("/{element}", response_model=AnswerKeyResponse)
async def save_answer_key(element: int, request: AnswerKeyRequest):
    """
    Insert or update answers of one element.
    Questions not in the request keep their stored answer.
    """
    answers = scan_service.save_answer_key(element, request.answers)
    return AnswerKeyResponse(element=element, answers=answers, count=len(answers))


@router.delete("/{element}", response_model=MessageResponse)
async def delete_answer_key(element: int):
    scan_service.delete_answer_key(element)
    return MessageResponse(message=Messages.ANSWER_KEY_DELETED, data={"element": element})
