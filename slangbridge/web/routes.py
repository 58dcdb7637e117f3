import asyncio
import logging
import threading
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from .models import (
    CacheMode,
    CacheStatsResponse,
    CleanupResponse,
    InvalidateRequest,
    InvalidateResponse,
    TranslateRequest,
    TranslateResponse,
)
from ..core.pipeline import BridgeOrchestrator, ValidationError
from ..core.translate import CONTEXT_INSTRUCTIONS
from ..core.translation_cache import StoreError, make_cache_key

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

_service: Optional[BridgeOrchestrator] = None
_service_lock = threading.Lock()


def get_service() -> BridgeOrchestrator:
    """Process-wide orchestrator, built from config on first use."""
    global _service
    with _service_lock:
        if _service is None:
            _service = BridgeOrchestrator.from_config()
        return _service


def close_service() -> None:
    global _service
    with _service_lock:
        if _service is not None:
            _service.close()
            _service = None


@router.post("/translate", response_model=TranslateResponse)
async def translate(
    body: TranslateRequest,
    response: Response,
    cache: Optional[CacheMode] = Query(None),
    service: BridgeOrchestrator = Depends(get_service),
):
    if body.context and body.context not in CONTEXT_INSTRUCTIONS:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid context: {body.context}. Must be one of: {', '.join(CONTEXT_INSTRUCTIONS)}"
        )

    try:
        result = await asyncio.to_thread(
            service.translate,
            body.text,
            body.from_style,
            body.to_style,
            use_latest_slang=body.use_latest_slang,
            bypass_cache=cache == CacheMode.SKIP,
            refresh_cache=cache == CacheMode.REFRESH,
            context=body.context,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    response.headers["x-cache-hit"] = "true" if result.metadata.get("cached") else "false"
    response.headers["x-cache-key"] = make_cache_key(body.from_style, body.to_style, body.text)[:12]
    return TranslateResponse(
        translation=result.translation,
        explanation=result.explanation,
        metadata=result.metadata,
    )


@router.post("/cache/invalidate", response_model=InvalidateResponse)
async def invalidate_cache(body: InvalidateRequest, service: BridgeOrchestrator = Depends(get_service)):
    try:
        removed = await asyncio.to_thread(
            service.invalidate,
            key=body.key, from_style=body.from_style, to_style=body.to_style, text=body.text,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StoreError as e:
        logger.error(f"[Cache] Invalidate failed: {e}")
        raise HTTPException(status_code=503, detail="Cache store unavailable")
    return InvalidateResponse(removed=removed)


@router.get("/cache/stats", response_model=CacheStatsResponse)
async def cache_stats(service: BridgeOrchestrator = Depends(get_service)):
    try:
        stats = await asyncio.to_thread(service.stats)
    except StoreError as e:
        logger.error(f"[Cache] Stats failed: {e}")
        raise HTTPException(status_code=503, detail="Cache store unavailable")
    return CacheStatsResponse(**stats)


@router.post("/cache/cleanup", response_model=CleanupResponse)
async def cleanup_cache(service: BridgeOrchestrator = Depends(get_service)):
    try:
        removed = await asyncio.to_thread(service.cleanup_expired)
    except StoreError as e:
        logger.error(f"[Cache] Cleanup failed: {e}")
        raise HTTPException(status_code=503, detail="Cache store unavailable")
    return CleanupResponse(removed=removed)


@router.get("/system/status")
async def system_status(service: BridgeOrchestrator = Depends(get_service)):
    return {
        "status": "online",
        "api_status": service.translator.provider.status(),
        "slang_terms": len(service.translator.registry) if service.translator.registry else 0,
    }
