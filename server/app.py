"""FastAPI application for serving workflow edits and layouts."""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from server.db import init_all
from server.layout_routes import router as layout_router
from server.workflow_db import WORKFLOW_DB_PATH
from server.workflow_routes import router as workflow_router

from dotenv import load_dotenv
load_dotenv()  # load environment variables from .env file

# CORS origins - configurable via environment variable
# Use comma-separated values for multiple origins, or "*" for all (development only)
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")
HOST = os.getenv("FLOWCRAFT_HOST", "0.0.0.0")
PORT = int(os.getenv("FLOWCRAFT_PORT", "8000"))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database tables on startup."""
    print("=" * 60)
    print("Starting FlowCraft workflow API")
    print(f"  workflow db: {WORKFLOW_DB_PATH}")
    print("=" * 60)
    init_all()
    yield


app = FastAPI(
    title="FlowCraft API",
    description="API server for workflow graph edits and auto-layout",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# include routes
app.include_router(workflow_router, prefix="/api")
app.include_router(layout_router, prefix="/api")


@app.get("/")
def root():
    """Health check endpoint."""
    return {
        "status": "ok",
        "version": "0.1.0",
        "workflow_db": str(WORKFLOW_DB_PATH),
        "endpoints": {
            "workflows": "/api/workflows",
            "deltas": "/api/workflows/{workflow_id}/deltas",
            "relayout": "/api/workflows/{workflow_id}/layout",
            "parse": "/api/workflows/parse",
            "layout": "/api/layout",
        },
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=HOST, port=PORT)
