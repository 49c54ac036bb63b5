"""
Configuration settings for the SheetScan API
"""
from pydantic_settings import BaseSettings
from pathlib import Path
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings using pydantic-settings"""

    # Server settings
    HOST: str = "127.0.0.1"
    PORT: int = 8000
    DEBUG: bool = True

    # CORS settings
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    # Project paths
    PROJECT_ROOT: Path = Path(__file__).parent.parent
    DATA_DIR: Path = PROJECT_ROOT / "data"
    LOGS_DIR: Path = PROJECT_ROOT / "logs"
    DEBUG_IMAGES_DIR: Optional[Path] = None

    # Answer keys / layouts (JSON files, loaded once at startup)
    ANSWER_KEY_FILE: Path = DATA_DIR / "answer_keys.json"
    LAYOUT_FILE: Optional[Path] = None

    # Document location
    LOCATOR_STRATEGIES: List[str] = ["anchor", "contour"]
    PREVIEW_SKEW_TOLERANCE: float = 0.15
    CAPTURE_SKEW_TOLERANCE: float = 0.30
    REJECT_SKEWED_CAPTURE: bool = True

    # Canonical frame
    CANONICAL_WIDTH: int = 1200
    CANONICAL_HEIGHT: int = 1600
    CROP_HEADER: bool = True

    # Binarization
    THRESHOLD_BLOCK_SIZE: int = 69
    THRESHOLD_OFFSET: float = 15.0

    # Mark detection
    MIN_FILLED_BUBBLES: int = 3
    MIN_FILL_RATIO: float = 0.25
    DOMINANCE_RATIO: float = 0.70
    CHOICE_BASE: int = 0

    # Preview mode
    PREVIEW_INTERVAL_MS: int = 500

    # Uploads
    MAX_IMAGE_SIZE: int = 10 * 1024 * 1024  # 10MB

    class Config:
        env_file = ".env"
        extra = "allow"


settings = Settings()

# Ensure directories exist
settings.DATA_DIR.mkdir(parents=True, exist_ok=True)
settings.LOGS_DIR.mkdir(parents=True, exist_ok=True)
