"""
FastAPI application for SheetScan
Answer sheet extraction and scoring over REST
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .routes import scan, layouts, answer_keys, results
from .config import settings
from .core import BaseAPIException, SheetRejectedException
from .services import scan_service

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events"""
    # Startup
    logger.info("Starting SheetScan API...")
    logger.info(f"Environment: {'development' if settings.DEBUG else 'production'}")
    logger.info(f"Layouts: {scan_service.registry.variants()}")
    logger.info(f"Answer keys loaded for elements: {scan_service.list_answer_keys()}")

    yield

    # Shutdown
    scan_service.shutdown()
    logger.info("Shutting down SheetScan API...")


app = FastAPI(
    title="SheetScan API",
    description="Extracts and scores multiple-choice answers from photographed answer sheets",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Global exception handlers
@app.exception_handler(BaseAPIException)
async def api_exception_handler(request: Request, exc: BaseAPIException):
    """Handle custom API exceptions"""
    content = {
        "success": False,
        "error": exc.detail,
        "error_code": exc.error_code
    }
    if isinstance(exc, SheetRejectedException) and exc.suggestion:
        content["suggestion"] = exc.suggestion
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions"""
    logger.error(f"Unexpected error: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "An unexpected error occurred",
            "error_code": "INTERNAL_ERROR"
        }
    )


# Include routers
app.include_router(scan.router, prefix="/api/scan", tags=["Scan"])
app.include_router(layouts.router, prefix="/api/layouts", tags=["Layouts"])
app.include_router(answer_keys.router, prefix="/api/answer-keys", tags=["Answer Keys"])
app.include_router(results.router, prefix="/api/results", tags=["Results"])


@app.get("/")
async def root():
    """API root endpoint"""
    return {
        "name": "SheetScan API",
        "version": VERSION,
        "status": "running",
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring"""
    return {
        "status": "healthy",
        "version": VERSION
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "sheetscan.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
