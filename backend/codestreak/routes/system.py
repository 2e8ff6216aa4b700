from __future__ import annotations
from fastapi import APIRouter, Depends, Request
from datetime import datetime, timezone
from codestreak.config import settings
from codestreak.deps import get_cache
from codestreak.services.cache import CacheManager

router = APIRouter()

@router.get("/health")
async def health(request: Request, cache: CacheManager = Depends(get_cache)):
    # Redis being down is reported, not treated as unhealthy: the fallback tier serves.
    return {
        "status": "ok",
        "env": settings.environment,
        "time": datetime.now(timezone.utc).isoformat(),
        "request_id": request.headers.get("x-request-id") or request.state.request_id,
        "cache": cache.status(),
    }

@router.get("/version")
async def version():
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "git_sha": settings.git_sha,
        "build": "docker",
    }
