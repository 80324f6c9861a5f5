"""/v1/dashboard - owner-wide totals, installments needing attention and payment stats"""

from dataclasses import asdict
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from budget_tracker.api.v1.schemas import (
    DashboardResponse,
    DashboardStatsResponse,
    ScheduledInstallmentResponse,
    TransactionStatsResponse,
)
from budget_tracker.api.dependencies import get_summary_service
from budget_tracker.services.summaries import SummaryService

router = APIRouter()


@router.get("/dashboard", response_model=DashboardResponse)
def get_dashboard(
    upcoming_days: Optional[int] = Query(None, ge=0, le=365, description="Defaults to the configured window"),
    service: SummaryService = Depends(get_summary_service),
):
    """
    Dashboard figures for the calling owner.

    Returns:
        Totals across all projects, unsettled installments due soon, and overdue installments
    """
    return DashboardResponse(
        stats=DashboardStatsResponse(**asdict(service.get_dashboard_stats())),
        upcoming_installments=[
            ScheduledInstallmentResponse(**asdict(item)) for item in service.upcoming_installments(upcoming_days)
        ],
        overdue_installments=[ScheduledInstallmentResponse(**asdict(item)) for item in service.overdue_installments()],
    )


@router.get("/dashboard/transaction-stats", response_model=TransactionStatsResponse)
def get_transaction_stats(
    start_date: date = Query(...),
    end_date: date = Query(...),
    service: SummaryService = Depends(get_summary_service),
):
    """Payments received between start_date and end_date, inclusive"""
    return TransactionStatsResponse(**asdict(service.get_transaction_stats(start_date, end_date)))
