"""FastAPI service storing opaque storyboard blobs per principal."""

import logging
import os
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Header, HTTPException, Path, status
from pydantic import BaseModel, Field

from .. import __version__
from ..core.exceptions import TokenNotFoundError
from .store import BlobStore, BlobStoreConfig
from .token_manager import TokenManager

# Configure logging
log_level = os.getenv("SB_LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stderr
)
logger = logging.getLogger(__name__)

DOCUMENT_ID_PATTERN = r"^[A-Za-z0-9_-]{1,64}$"


# ============================================================================
# Request/Response Models
# ============================================================================

class SessionRequest(BaseModel):
    """Request a bearer token for a principal."""
    principal: str = Field(..., min_length=1, max_length=128, description="User identifier")


class SessionResponse(BaseModel):
    token: str
    principal: str
    start_ts: float


class BlobWriteRequest(BaseModel):
    """Opaque ciphertext to store."""
    data: str = Field(..., min_length=1, description="Encrypted storyboard blob")


class StoryboardRecord(BaseModel):
    document_id: str
    data: str
    created_at: float
    updated_at: float


class StoryboardSummary(BaseModel):
    document_id: str
    created_at: float
    updated_at: float
    size: int


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    active_tokens: int
    principals: int


# ============================================================================
# Global State
# ============================================================================

store: BlobStore | None = None
token_manager: TokenManager | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    global store, token_manager

    logger.info("Starting Storyboard blob store...")

    config = BlobStoreConfig.from_env()
    token_manager = TokenManager(config.token_ttl)
    store = BlobStore(config, token_manager)

    logger.info(f"Server ready (data: {config.data_path})")

    yield

    if store:
        store.shutdown()

    logger.info("Server stopped")


app = FastAPI(
    title="Storyboard Blob Store",
    description="Opaque per-user storage for client-encrypted storyboards",
    version=__version__,
    lifespan=lifespan
)


def _require_store() -> BlobStore:
    if not store or not token_manager:
        raise HTTPException(status_code=500, detail="Store not initialized")
    return store


def _principal(authorization: str | None) -> str:
    """Resolve `Authorization: Bearer <token>` to a principal, or 401."""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return token_manager.resolve(authorization[len("Bearer "):].strip())
    except TokenNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )


# ============================================================================
# API Endpoints
# ============================================================================

@app.get("/api/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return {
        "status": "ok",
        "version": __version__,
        "active_tokens": token_manager.count() if token_manager else 0,
        "principals": len(store.records) if store else 0,
    }


@app.post("/api/sessions", response_model=SessionResponse)
async def open_session(request: SessionRequest):
    """Issue a bearer token for a principal."""
    _require_store()
    return token_manager.issue(request.principal)


@app.get("/api/storyboards", response_model=list[StoryboardSummary])
async def list_storyboards(authorization: str | None = Header(None)):
    """Metadata for the caller's storyboards, newest first."""
    blob_store = _require_store()
    return blob_store.list_records(_principal(authorization))


@app.get("/api/storyboards/latest", response_model=StoryboardRecord)
async def latest_storyboard(authorization: str | None = Header(None)):
    """Most recently saved storyboard for the caller."""
    blob_store = _require_store()
    record = blob_store.latest(_principal(authorization))
    if record is None:
        raise HTTPException(status_code=404, detail="No storyboard saved yet")
    return record


@app.get("/api/storyboards/{document_id}", response_model=StoryboardRecord)
async def get_storyboard(
    document_id: str = Path(..., pattern=DOCUMENT_ID_PATTERN),
    authorization: str | None = Header(None),
):
    blob_store = _require_store()
    record = blob_store.get(_principal(authorization), document_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Storyboard '{document_id}' not found")
    return record


@app.put("/api/storyboards/{document_id}", response_model=StoryboardRecord)
async def put_storyboard(
    request: BlobWriteRequest,
    document_id: str = Path(..., pattern=DOCUMENT_ID_PATTERN),
    authorization: str | None = Header(None),
):
    """Create or overwrite a storyboard by id."""
    blob_store = _require_store()
    principal = _principal(authorization)

    try:
        return blob_store.put(principal, document_id, request.data)
    except Exception as e:
        logger.error(f"Error storing storyboard {document_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/storyboards", response_model=StoryboardRecord, status_code=201)
async def create_storyboard(request: BlobWriteRequest, authorization: str | None = Header(None)):
    """Insert a storyboard under a server-generated id."""
    blob_store = _require_store()
    principal = _principal(authorization)

    try:
        return blob_store.create(principal, request.data)
    except Exception as e:
        logger.error(f"Error creating storyboard: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.delete("/api/storyboards/{document_id}")
async def delete_storyboard(
    document_id: str = Path(..., pattern=DOCUMENT_ID_PATTERN),
    authorization: str | None = Header(None),
):
    blob_store = _require_store()
    return {"deleted": blob_store.delete(_principal(authorization), document_id)}


# ============================================================================
# Main
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("SB_HTTP_PORT", "8766"))
    host = os.getenv("SB_HTTP_HOST", "127.0.0.1")

    logger.info(f"Starting server on {host}:{port}")

    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level=log_level.lower(),
    )
