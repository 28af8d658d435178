"""Budget transaction endpoints."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..auth import Actor, get_actor
from ..config import settings
from ..database import get_db
from ..models import PaymentStatus, Transaction, TransactionType
from ..schemas import (
    PaymentUpdate,
    TransactionCreate,
    TransactionEnvelope,
    TransactionListResponse,
    TransactionResponse,
)
from ..security import scoped_query
from ..services.pagination import apply_search, paginate
from ..use_cases.transactions import (
    create_transaction_use_case,
    get_transaction_or_404,
    update_payment_use_case,
)

router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.get("", response_model=TransactionListResponse)
def get_transactions(
    project_id: Optional[UUID] = None,
    payment_status: Optional[PaymentStatus] = None,
    type_filter: Optional[TransactionType] = Query(None, alias="type"),
    q: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    query = scoped_query(db, Transaction, org_id=actor.org_id)
    if project_id:
        query = query.filter(Transaction.project_id == project_id)
    if payment_status:
        query = query.filter(Transaction.payment_status == payment_status.value)
    if type_filter:
        query = query.filter(Transaction.type == type_filter.value)
    query = apply_search(query, q, Transaction.description, Transaction.vendor, Transaction.invoice_no)

    rows, meta = paginate(
        query,
        page=page,
        limit=limit,
        order_by=(Transaction.date.desc(), Transaction.created_at.desc()),
    )
    return TransactionListResponse(items=[TransactionResponse.model_validate(t) for t in rows], **meta)


@router.post("", response_model=TransactionEnvelope, status_code=status.HTTP_201_CREATED)
def create_transaction(
    payload: TransactionCreate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    transaction = create_transaction_use_case(db=db, payload=payload, actor=actor)
    return TransactionEnvelope(transaction=TransactionResponse.model_validate(transaction))


@router.get("/{transaction_id}", response_model=TransactionEnvelope)
def get_transaction(
    transaction_id: UUID,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    transaction = get_transaction_or_404(db=db, transaction_id=transaction_id, org_id=actor.org_id)
    return TransactionEnvelope(transaction=TransactionResponse.model_validate(transaction))


@router.patch("/{transaction_id}", response_model=TransactionEnvelope)
def update_payment(
    transaction_id: UUID,
    payload: PaymentUpdate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    """Update payment status, paid amount and attachments."""
    transaction = update_payment_use_case(db=db, transaction_id=transaction_id, payload=payload, actor=actor)
    return TransactionEnvelope(transaction=TransactionResponse.model_validate(transaction))
