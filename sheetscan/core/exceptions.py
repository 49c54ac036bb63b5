"""
Custom exceptions for the SheetScan API
"""
from fastapi import HTTPException, status


class BaseAPIException(HTTPException):
    """Base exception for all API errors"""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: str = None,
        headers: dict = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code


class NotFoundException(BaseAPIException):
    """Resource not found"""

    def __init__(self, resource: str, identifier: str = None):
        detail = f"{resource} not found"
        if identifier:
            detail = f"{resource} '{identifier}' not found"
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            error_code="NOT_FOUND"
        )


class BadRequestException(BaseAPIException):
    """Bad request - invalid input"""

    def __init__(self, message: str):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=message,
            error_code="BAD_REQUEST"
        )


class FileProcessingException(BaseAPIException):
    """Error processing file"""

    def __init__(self, filename: str, reason: str):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Could not process file '{filename}': {reason}",
            error_code="FILE_PROCESSING_ERROR"
        )


class SheetRejectedException(BaseAPIException):
    """Answer sheet rejected; a new capture is needed"""

    def __init__(self, reason: str, suggestion: str = None):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=reason,
            error_code="SHEET_REJECTED"
        )
        self.suggestion = suggestion
