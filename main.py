import logging
import os
import time
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from clipstore.api.routes_auth import router as auth_router
from clipstore.api.routes_videos import router as videos_router
from clipstore.core.config import get_settings
from clipstore.core.database_sync import mongodb_sync
from clipstore.core.exceptions import ClipstoreError

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="level=%(levelname)s time=%(asctime)s module=%(module)s func=%(funcName)s msg=%(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S%z",
)
logger = logging.getLogger("clipstore")

settings = get_settings()

app = FastAPI(
    title="Clipstore API",
    description="Upload, remux and serve videos from S3 with short-lived links.",
    version="1.0.0",
)


@app.on_event("startup")
def startup_event():
    mongodb_sync.connect(settings)
    mongodb_sync.db["users"].create_index("email", unique=True)


@app.on_event("shutdown")
def shutdown_event():
    mongodb_sync.close()


@app.middleware("http")
async def log_request_time(request: Request, call_next):
    start_time = time.perf_counter()
    logger.info(f"Request started: method={request.method} url={request.url}")
    response = None
    try:
        response = await call_next(request)
        return response
    finally:
        duration = time.perf_counter() - start_time
        logger.info(
            f"Request finished: method={request.method} url={request.url} "
            f"duration={duration:.3f}s status_code={getattr(response, 'status_code', 'N/A')}"
        )


@app.exception_handler(ClipstoreError)
async def clipstore_error_handler(request: Request, exc: ClipstoreError):
    message = f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}"
    if exc.detail:
        message += f" ({exc.detail})"
    if exc.status_code >= 500:
        logger.error(message, exc_info=exc)
    else:
        logger.warning(message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


app.include_router(auth_router, prefix="/auth", tags=["auth"])
app.include_router(videos_router, prefix="/videos", tags=["videos"])

Path(settings.ASSETS_ROOT).mkdir(parents=True, exist_ok=True)
app.mount("/assets", StaticFiles(directory=settings.ASSETS_ROOT), name="assets")

# Allow CORS (for frontend)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Replace with your frontend URL in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root():
    return {"message": "clipstore is running"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=settings.PORT)
