from __future__ import annotations

"""
FastAPI application for cross-marketplace product matching.

- POST /match runs one find_match and returns the MatchResult as-is
- failures are reported in the body (success=false, error_kind), never as 5xx
- unsupported target marketplaces are rejected with 422 before any search starts
"""

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from . import config
from .config import FindMatchRequest, HealthResponse, MatchResult
from ._singletons import get_coordinator, get_handoff_store
from .query import UnsupportedMarketplaceError, resolve_marketplace


async def run_find_match(req: FindMatchRequest) -> MatchResult:
    return await get_coordinator().find_match(
        req.source_product,
        req.target_marketplace,
        options=req.options,
    )


# -----------------------
# FastAPI app + startup
# -----------------------

app = FastAPI()
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def startup_event() -> None:
    logger.add(
        str(config.LOG_FILE),
        level=config.LOG_LEVEL,
        rotation="10 MB",
        retention=5,
        enqueue=True,
    )
    logger.info(
        "Starting matchfinder: timeout={}ms min_similarity={} concurrency={} handoff={}",
        config.DEFAULT_TIMEOUT_MS,
        config.DEFAULT_MIN_SIMILARITY,
        config.CONCURRENCY_POLICY,
        config.HANDOFF_BACKEND,
    )


@app.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    active = await get_handoff_store().active_requests()
    return HealthResponse(status="healthy", active_searches=active)


@app.post("/match", response_model=MatchResult)
async def match(req: FindMatchRequest) -> MatchResult:
    if not req.source_product.title.strip():
        raise HTTPException(status_code=422, detail="Source product title must be non-empty")
    try:
        resolve_marketplace(req.target_marketplace)
    except UnsupportedMarketplaceError as e:
        raise HTTPException(status_code=422, detail=str(e))
    result = await run_find_match(req)
    logger.info("POST /match -> success={} kind={}", result.success, result.error_kind)
    return result
