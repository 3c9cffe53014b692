# app/routers/analytics.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.analytics import DashboardMetrics, PerformanceMetrics, TeamMetrics
from app.services.analytics import AnalyticsAggregator
from app.utils.auth import get_current_principal
from app.utils.permissions import Principal

router = APIRouter(prefix="/analytics", tags=["Analytics"])

def get_aggregator(db: Session = Depends(get_db)) -> AnalyticsAggregator:
    return AnalyticsAggregator(db)

@router.get("/dashboard", response_model=DashboardMetrics)
def get_dashboard(
    aggregator: AnalyticsAggregator = Depends(get_aggregator),
    principal: Principal = Depends(get_current_principal)
):
    """Organisation wide task statistics - admin only"""
    return aggregator.get_dashboard(principal)

@router.get("/employee/{user_id}", response_model=PerformanceMetrics)
def get_employee_performance(
    user_id: int,
    aggregator: AnalyticsAggregator = Depends(get_aggregator),
    principal: Principal = Depends(get_current_principal)
):
    """Performance report for one user; also refreshes their cached productivity score"""
    return aggregator.get_employee_performance(principal, user_id)

@router.get("/team", response_model=TeamMetrics)
def get_team_analytics(
    aggregator: AnalyticsAggregator = Depends(get_aggregator),
    principal: Principal = Depends(get_current_principal)
):
    return aggregator.get_team_analytics(principal)
