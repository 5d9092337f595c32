"""FastAPI application entry point."""

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from sage_engine import __version__
from sage_engine.api import router as api_router
from sage_engine.core.sessions import SessionRegistry

app = FastAPI(
    title="Sage Codex Engine",
    description="Streaming tool-call pipeline and cross-section consistency engine",
    version=__version__,
)

app.state.sessions = SessionRegistry()


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "ok"}, status_code=200)


# Include v1 API router
app.include_router(api_router, prefix="/v1", tags=["v1"])
