"""/v1/installments - edit and remove installments, suggest plans"""

import uuid
from typing import List

from fastapi import APIRouter, Depends, Response

from budget_tracker.api.dependencies import get_clock, get_installment_service
from budget_tracker.api.v1.schemas import (
    InstallmentSchema,
    InstallmentUpdateRequest,
    PlannedInstallment,
    PlanSuggestionRequest,
)
from budget_tracker.domain.installments import suggest_installment_plan
from budget_tracker.services.installments import InstallmentService
from budget_tracker.utils.date_utils import Clock

router = APIRouter()


@router.post("/installments/suggest", response_model=List[PlannedInstallment])
def suggest_plan(request_body: PlanSuggestionRequest, clock: Clock = Depends(get_clock)):
    """
    Propose an equal split of a budget; nothing is stored.

    Returns:
        Installments summing exactly to the budget, the last one absorbing the rounding remainder
    """
    plan = suggest_installment_plan(
        request_body.total_budget,
        request_body.num_installments,
        interval_days=request_body.interval_days,
        start_date=request_body.start_date,
        today=clock(),
    )
    return [
        PlannedInstallment(installment_number=item.installment_number, amount=item.amount, due_date=item.due_date)
        for item in plan
    ]


@router.patch("/installments/{installment_id}", response_model=InstallmentSchema)
def update_installment(
    installment_id: uuid.UUID,
    request_body: InstallmentUpdateRequest,
    service: InstallmentService = Depends(get_installment_service),
):
    changes = request_body.model_dump(exclude_unset=True, exclude_none=True)
    return InstallmentSchema.from_row(service.update_installment(installment_id, **changes))


@router.delete("/installments/{installment_id}", status_code=204)
def delete_installment(installment_id: uuid.UUID, service: InstallmentService = Depends(get_installment_service)):
    service.delete_installment(installment_id)
    return Response(status_code=204)
