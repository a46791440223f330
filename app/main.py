"""
Pastebin Lite - Main FastAPI application.
"""
import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from redis.exceptions import RedisError

from app.config import settings
from app.errors import PasteError
from app.routes import health, pastes

TEMPLATES_DIR = Path(__file__).parent / "templates"

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Pastebin Lite",
    description="A lightweight Pastebin-like application for sharing self-destructing text",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include route modules
app.include_router(health.router)
app.include_router(pastes.router)


@app.exception_handler(PasteError)
async def paste_error_handler(request: Request, exc: PasteError) -> JSONResponse:
    """Map paste errors onto their HTTP status."""
    return JSONResponse({"error": str(exc)}, status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies as a plain 400."""
    errors = exc.errors()
    if errors:
        location = ".".join(str(part) for part in errors[0]["loc"] if part != "body")
        message = f"{location}: {errors[0]['msg']}" if location else errors[0]["msg"]
    else:
        message = "Invalid request"
    return JSONResponse({"error": message}, status_code=400)


@app.exception_handler(RedisError)
async def storage_error_handler(request: Request, exc: RedisError) -> JSONResponse:
    """Storage failures are the server's fault, never the client's."""
    logger.error(f"Storage failure on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse({"error": "Internal Server Error"}, status_code=500)


@app.on_event("startup")
async def startup_event():
    """Startup event handler."""
    logger.info("Pastebin Lite application starting...")
    if settings.TEST_MODE:
        logger.warning("TEST_MODE is on: x-test-now-ms overrides the clock")


@app.on_event("shutdown")
async def shutdown_event():
    """Shutdown event handler."""
    logger.info("Pastebin Lite application shutting down...")


@app.get("/", response_class=FileResponse)
async def root():
    """Serve the create paste HTML page."""
    return FileResponse(TEMPLATES_DIR / "create.html", media_type="text/html")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
