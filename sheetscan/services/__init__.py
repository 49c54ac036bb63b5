# Services package
from .scan_service import scan_service, ScanService

__all__ = [
    "scan_service",
    "ScanService",
]
