"""/v1/transactions - record, correct, remove and list payments"""

import uuid
from datetime import date
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from budget_tracker.api.dependencies import get_transaction_service
from budget_tracker.api.v1.schemas import (
    TransactionCreateRequest,
    TransactionListResponse,
    TransactionResponse,
    TransactionUpdateRequest,
    TransactionWriteResponse,
)
from budget_tracker.infrastructure.database.repositories import TransactionFilters
from budget_tracker.services.transactions import TransactionService
from budget_tracker.utils.money import to_cents

router = APIRouter()


@router.post("/transactions", response_model=TransactionWriteResponse, status_code=201)
def create_transaction(
    request_body: TransactionCreateRequest, service: TransactionService = Depends(get_transaction_service)
):
    """
    Record a payment confirmed elsewhere.

    Returns:
        The stored transaction; warnings are set when it exceeds the remaining amount
    """
    result = service.create_transaction(
        project_id=request_body.project_id,
        amount=request_body.amount,
        notes=request_body.notes,
        transaction_date=request_body.transaction_date,
        installment_id=request_body.installment_id,
    )
    return TransactionWriteResponse(
        transaction=TransactionResponse.from_row(result.transaction), warnings=result.warnings
    )


@router.get("/transactions", response_model=TransactionListResponse)
def list_transactions(
    project_id: Optional[uuid.UUID] = Query(None),
    installment_id: Optional[uuid.UUID] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    min_amount: Optional[Decimal] = Query(None, ge=0),
    max_amount: Optional[Decimal] = Query(None, ge=0),
    search: Optional[str] = Query(None, description="Notes or project title contains"),
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1),
    service: TransactionService = Depends(get_transaction_service),
):
    filters = TransactionFilters(
        project_id=project_id,
        installment_id=installment_id,
        date_from=date_from,
        date_to=date_to,
        min_amount_cents=to_cents(min_amount) if min_amount is not None else None,
        max_amount_cents=to_cents(max_amount) if max_amount is not None else None,
        search=search,
    )
    result = service.list_transactions(filters, page=page, page_size=page_size)
    return TransactionListResponse(
        items=[TransactionResponse.from_row(row) for row in result.items],
        page=result.page,
        page_size=result.page_size,
        total_count=result.total_count,
        total_pages=result.total_pages,
        has_next=result.has_next,
        has_previous=result.has_previous,
    )


@router.get("/transactions/{transaction_id}", response_model=TransactionResponse)
def get_transaction(transaction_id: uuid.UUID, service: TransactionService = Depends(get_transaction_service)):
    return TransactionResponse.from_row(service.get_transaction(transaction_id))


@router.patch("/transactions/{transaction_id}", response_model=TransactionWriteResponse)
def update_transaction(
    transaction_id: uuid.UUID,
    request_body: TransactionUpdateRequest,
    service: TransactionService = Depends(get_transaction_service),
):
    changes = request_body.model_dump(exclude_unset=True)
    result = service.update_transaction(
        transaction_id,
        amount=changes.get("amount"),
        transaction_date=changes.get("transaction_date"),
        notes=changes.get("notes"),
        **({"installment_id": changes["installment_id"]} if "installment_id" in changes else {}),
    )
    return TransactionWriteResponse(
        transaction=TransactionResponse.from_row(result.transaction), warnings=result.warnings
    )


@router.delete("/transactions/{transaction_id}", status_code=204)
def delete_transaction(transaction_id: uuid.UUID, service: TransactionService = Depends(get_transaction_service)):
    service.delete_transaction(transaction_id)
    return Response(status_code=204)
