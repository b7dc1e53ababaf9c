"""
Main FastAPI application entry point.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from schoolhub.api.admin_catalog import router as admin_catalog_router
from schoolhub.api.admin_stats import router as admin_stats_router
from schoolhub.api.auth import router as auth_router
from schoolhub.api.catalog import router as catalog_router
from schoolhub.api.quizzes import router as quizzes_router
from schoolhub.api.resources import router as resources_router
from schoolhub.core.config import settings
from schoolhub.core.database import init_db
from schoolhub.core.logging_config import configure_logging
from schoolhub.services.errors import SchoolHubError

logger = configure_logging(settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    """
    logger.info("Starting %s %s (%s)", settings.APP_NAME, settings.APP_VERSION, settings.ENVIRONMENT)
    init_db()
    logger.info("Database initialized")
    yield
    logger.info("Shutdown complete")


app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    docs_url=settings.DOCS_URL if not settings.is_production() else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

prefix = settings.API_V1_PREFIX
app.include_router(auth_router, prefix=f"{prefix}/auth", tags=["auth"])
app.include_router(admin_catalog_router, prefix=f"{prefix}/admin", tags=["admin-catalog"])
app.include_router(admin_stats_router, prefix=f"{prefix}/admin", tags=["admin"])
app.include_router(catalog_router, prefix=f"{prefix}/classes", tags=["catalog"])
app.include_router(resources_router, prefix=f"{prefix}/resources", tags=["resources"])
app.include_router(quizzes_router, prefix=f"{prefix}/quizzes", tags=["quizzes"])

app.mount(settings.UPLOAD_URL_PREFIX, StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False), name="uploads")


# Exception handlers
@app.exception_handler(SchoolHubError)
async def domain_exception_handler(request: Request, exc: SchoolHubError):
    """Render domain refusals with their own status code."""
    return JSONResponse(status_code=exc.status_code, content={"error": jsonable_encoder(exc.to_dict())})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "message": exc.detail,
                "type": "http_error",
                "status_code": exc.status_code
            }
        },
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors."""
    return JSONResponse(
        status_code=422,
        content={
            "error": {
                "message": "Validation error",
                "type": "validation_error",
                "status_code": 422,
                "details": jsonable_encoder(exc.errors())
            }
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.error("Unhandled exception on %s %s: %s", request.method, request.url.path, exc, exc_info=True)
    message = "An internal error occurred" if settings.is_production() else str(exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": {"message": message, "type": "internal_error", "status_code": 500}}
    )


@app.get("/health", tags=["Health"])
def health():
    return {"status": "ok", "version": settings.APP_VERSION}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("schoolhub.main:app", host="0.0.0.0", port=8000, reload=not settings.is_production())
