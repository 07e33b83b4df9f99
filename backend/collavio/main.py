"""Collavio: FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from collavio.config import settings
from collavio.database import connect_db, create_indexes
from collavio.auth.identity import SupabaseIdentityProvider
from collavio.storage.unified import build_storage
from collavio.integrations.ytclone_client import YTCloneClient

# Import routers
from collavio.auth.router import router as auth_router
from collavio.users.router import router as users_router
from collavio.workspaces.router import router as workspaces_router
from collavio.videos.router import router as videos_router
from collavio.comments.router import router as comments_router
from collavio.notifications.router import router as notifications_router
from collavio.integrations.router import router as integrations_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build every external client once and hand them to routes via app.state."""
    logger.info(f"Starting {settings.APP_NAME}...")
    http = httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS)
    mongo_client, db = connect_db()
    try:
        await create_indexes(db)
        logger.info("MongoDB connected, indexes ensured")
    except Exception as e:
        logger.warning(f"MongoDB index setup deferred: {e}")

    app.state.db = db
    app.state.identity = SupabaseIdentityProvider(http)
    app.state.storage = build_storage(http)
    app.state.ytclone = YTCloneClient(http)
    logger.info(f"Storage provider: {app.state.storage.provider}")

    logger.info(f"{settings.APP_NAME} is ready")
    yield

    logger.info("Shutting down...")
    await http.aclose()
    mongo_client.close()


app = FastAPI(
    title=settings.APP_NAME,
    description="Video review and publishing workspaces for creators and editors",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    body = exc.detail if isinstance(exc.detail, dict) else {"message": str(exc.detail)}
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    message = str(first.get("msg", "Invalid request")).removeprefix("Value error, ")
    field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path", "form"))
    body = {"message": message}
    if field:
        body["error"] = f"Invalid field: {field}"
    return JSONResponse(status_code=400, content=body)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"message": "Server error", "error": str(exc)})


# Register routers
app.include_router(auth_router, prefix="/api")
app.include_router(users_router, prefix="/api")
app.include_router(workspaces_router, prefix="/api")
app.include_router(videos_router, prefix="/api")
app.include_router(comments_router, prefix="/api")
app.include_router(notifications_router, prefix="/api")
app.include_router(integrations_router, prefix="/api")

# Local uploads are served back from disk
if settings.STORAGE_PROVIDER.lower() == "local":
    app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False), name="uploads")


@app.get("/")
async def root():
    return {
        "name": settings.APP_NAME,
        "version": "1.0.0",
        "docs": "/docs",
    }


if __name__ == "__main__":
    uvicorn.run(
        "collavio.main:app",
        host="0.0.0.0",
        port=5000,
        reload=settings.DEBUG,
    )
