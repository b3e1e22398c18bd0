"""
FastAPI Application Entry Point
--------------------------------
Creates the study planner API.

WHAT THIS FILE DOES:
1. Configures logging
2. Creates the FastAPI app; startup creates the database tables
3. Sets up CORS so the planner UI can call the API
4. Registers the /plans routes and the health check

RUN:
uvicorn studyplan.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from studyplan import __version__
from studyplan.api import plans
from studyplan.config import settings
from studyplan.db.database import check_db_connection, init_db


# ============================================================================
# LOGGING SETUP
# ============================================================================
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


# ============================================================================
# LIFESPAN EVENTS (Startup / Shutdown)
# ============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: create tables and check the database.
    Shutdown: nothing to release; sessions are closed per request.
    """
    logger.info("🚀 Starting Study Planner API...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Database: {settings.DATABASE_URL.split('@')[-1]}")  # Hide password

    init_db()
    if not check_db_connection():
        logger.error("❌ Failed to connect to database!")
        raise RuntimeError("Database connection failed")

    logger.info("✅ Application started successfully")

    yield

    logger.info("👋 Shutting down Study Planner API...")


# ============================================================================
# CREATE FASTAPI APP
# ============================================================================
app = FastAPI(
    title="Study Planner API",
    description="AI study plan generation from courses, exams, lectures, quizzes and tasks",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)


# ============================================================================
# MIDDLEWARE
# ============================================================================
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# HEALTH CHECK ENDPOINT
# ============================================================================
@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint for monitoring.

    TEST IT:
    curl http://localhost:8000/health
    """
    return JSONResponse(
        status_code=200,
        content={
            "status": "healthy",
            "environment": settings.ENVIRONMENT,
            "version": __version__
        }
    )


# ============================================================================
# ROOT ENDPOINT
# ============================================================================
@app.get("/", tags=["Root"])
async def root():
    return {
        "message": "Welcome to Study Planner API",
        "docs": "/docs",
        "health": "/health",
        "version": __version__
    }


# ============================================================================
# REGISTER ROUTES
# ============================================================================
app.include_router(plans.router, prefix="/plans", tags=["Plans"])


# ============================================================================
# ERROR HANDLERS
# ============================================================================
@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Log unhandled exceptions and return a JSON 500"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "message": "Something went wrong. Please try again later.",
            # Never expose error details in production
            "detail": str(exc) if not settings.is_production else None
        }
    )


# ============================================================================
# RUN APPLICATION (for development)
# ============================================================================
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "studyplan.main:app",
        host=settings.BACKEND_HOST,
        port=settings.BACKEND_PORT,
        reload=settings.BACKEND_RELOAD,
        log_level=settings.LOG_LEVEL.lower()
    )
