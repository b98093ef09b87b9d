"""FastAPI application entry point."""

from fastapi import FastAPI

from .. import __version__
from .routes import runs, support

app = FastAPI(
    title="Porter API",
    description="Run forum data migrations and inspect package support",
    version=__version__,
)

# Include routers
app.include_router(runs.router, prefix="/api/runs", tags=["runs"])
app.include_router(support.router, prefix="/api/support", tags=["support"])


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
