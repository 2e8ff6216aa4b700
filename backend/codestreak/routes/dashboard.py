from __future__ import annotations
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, Response
from codestreak.deps import get_dashboard_service
from codestreak.schemas.dashboard import (
    ChallengeProgress, DashboardItem, HeatmapDay, LeaderboardEntry, SubmissionChartPoint, TodayOverview, UserStats,
)
from codestreak.services.dashboard import DashboardService

# Caller identity is resolved upstream; user ids arrive already authorized.
router = APIRouter(prefix="/dashboard", tags=["dashboard"])

@router.get("/users/{user_id}", response_model=list[DashboardItem])
async def dashboard(user_id: UUID, svc: DashboardService = Depends(get_dashboard_service)):
    return await svc.get_dashboard(user_id)

@router.get("/users/{user_id}/today", response_model=TodayOverview)
async def today_status(user_id: UUID, svc: DashboardService = Depends(get_dashboard_service)):
    return await svc.get_today_status(user_id)

@router.get("/users/{user_id}/activity-heatmap", response_model=list[HeatmapDay])
async def activity_heatmap(user_id: UUID, svc: DashboardService = Depends(get_dashboard_service)):
    return await svc.get_activity_heatmap(user_id)

@router.get("/users/{user_id}/submission-chart", response_model=list[SubmissionChartPoint])
async def submission_chart(user_id: UUID, svc: DashboardService = Depends(get_dashboard_service)):
    return await svc.get_submission_chart(user_id)

@router.get("/users/{user_id}/stats", response_model=UserStats)
async def user_stats(user_id: UUID, svc: DashboardService = Depends(get_dashboard_service)):
    return await svc.get_user_stats(user_id)

@router.get("/challenges/{challenge_id}/leaderboard", response_model=list[LeaderboardEntry])
async def leaderboard(challenge_id: UUID, svc: DashboardService = Depends(get_dashboard_service)):
    rows = await svc.get_leaderboard(challenge_id)
    if rows is None:
        raise HTTPException(status_code=404, detail="Challenge not found")
    return rows

@router.post("/challenges/{challenge_id}/leaderboard/invalidate", status_code=204)
async def invalidate_leaderboard(challenge_id: UUID, svc: DashboardService = Depends(get_dashboard_service)):
    await svc.invalidate_leaderboard(challenge_id)
    return Response(status_code=204)

@router.get("/challenges/{challenge_id}/progress/{user_id}", response_model=ChallengeProgress)
async def challenge_progress(challenge_id: UUID, user_id: UUID, svc: DashboardService = Depends(get_dashboard_service)):
    progress = await svc.get_challenge_progress(challenge_id, user_id)
    if progress is None:
        raise HTTPException(status_code=404, detail="Challenge membership not found")
    return progress
