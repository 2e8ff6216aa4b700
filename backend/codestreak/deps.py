from __future__ import annotations
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from codestreak.db import get_session
from codestreak.services.cache import CacheManager
from codestreak.services.dashboard import DashboardService
from codestreak.services.repository import ChallengeRepository, SqlChallengeRepository

async def get_repository(session: AsyncSession = Depends(get_session)) -> ChallengeRepository:
    return SqlChallengeRepository(session)

def get_cache(request: Request) -> CacheManager:
    # built once per process in the app lifespan
    return request.app.state.cache

def get_dashboard_service(
    repository: ChallengeRepository = Depends(get_repository),
    cache: CacheManager = Depends(get_cache),
) -> DashboardService:
    return DashboardService(repository, cache)
