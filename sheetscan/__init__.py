# SheetScan package
"""
SheetScan - answer sheet extraction and scoring
"""

from .config import settings

__version__ = "1.0.0"

__all__ = [
    "settings",
]
