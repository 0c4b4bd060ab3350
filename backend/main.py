"""FastAPI backend for the loop ASMR generator."""
import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError

from backend.config import Settings
from backend.generation import generate_loop
from backend.models import ErrorResponse, GenerateRequest, GenerationResult, HealthResponse
from backend.pipeline import build_publishers

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Loop ASMR Studio API",
    description="Turn a short prompt into a seamless 9:16 ASMR loop with raw sound and platform captions",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify frontend domain
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

settings = Settings.from_env()

# Ensure directories exist
settings.temp_dir.mkdir(parents=True, exist_ok=True)
settings.public_dir.mkdir(parents=True, exist_ok=True)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


@app.post(
    "/api/generate",
    response_model=GenerationResult,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def generate(request: Request):
    """
    Generate a loop from a prompt and publish it.

    Runs synchronously: the response carries the public asset URLs, both
    captions and one post result per platform.
    """
    try:
        payload = await request.json()
        body = GenerateRequest.model_validate(payload)
    except (ValueError, ValidationError):
        return _error(400, "Prompt is required")

    if not body.prompt or not body.prompt.strip():
        return _error(400, "Prompt is required")

    try:
        return await generate_loop(body.prompt, settings, build_publishers(settings))
    except Exception as e:
        logger.exception("Generation failed")
        return _error(500, str(e) or "Generation failed")


@app.get("/api/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(status="ok")


@app.on_event("startup")
async def startup_event():
    """Run startup tasks."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logger.info("Loop ASMR Studio API starting...")
    logger.info("Temp directory: %s", settings.temp_dir)
    logger.info("Public directory: %s (served at %s)", settings.public_dir, settings.public_base_url)
    for publisher in build_publishers(settings):
        state = "configured" if publisher.is_configured() else "not configured, posts will be skipped"
        logger.info("%s publishing %s", publisher.display_name, state)


@app.on_event("shutdown")
async def shutdown_event():
    """Run shutdown tasks."""
    logger.info("Loop ASMR Studio API shutting down...")


# Generated loops are served from the public directory
if settings.public_base_url.startswith("/"):
    app.mount(settings.public_base_url, StaticFiles(directory=str(settings.public_dir)), name="generated")

# Serve frontend static files (must be after API routes)
if settings.static_dir and settings.static_dir.exists():
    if (settings.static_dir / "assets").exists():
        app.mount("/assets", StaticFiles(directory=str(settings.static_dir / "assets")), name="static-assets")

    @app.get("/{full_path:path}")
    async def serve_frontend(full_path: str):
        """Serve the SPA frontend for any non-API route."""
        index_path = settings.static_dir / "index.html"
        if index_path.exists():
            return HTMLResponse(index_path.read_text())
        raise HTTPException(status_code=404, detail="Frontend not found")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
