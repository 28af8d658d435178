"""Budget transaction use-cases."""
from __future__ import annotations

import logging
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..auth import Actor, require_permission
from ..domain_errors import ValidationError
from ..models import AuditEvent, PaymentStatus, Project, Transaction
from ..schemas import PaymentUpdate, TransactionCreate
from ..security import require_org_entity

logger = logging.getLogger(__name__)


def get_transaction_or_404(*, db: Session, transaction_id: UUID, org_id: UUID) -> Transaction:
    return require_org_entity(
        db,
        Transaction,
        entity_id=transaction_id,
        org_id=org_id,
        not_found="Transaction not found",
        code="TRANSACTION_NOT_FOUND",
    )


def create_transaction_use_case(*, db: Session, payload: TransactionCreate, actor: Actor) -> Transaction:
    require_permission(
        actor,
        "canCreateTransactions",
        message="Only engineers and accountants can create transactions",
    )
    project = require_org_entity(
        db,
        Project,
        entity_id=payload.project_id,
        org_id=actor.org_id,
        not_found="Project not found",
        code="PROJECT_NOT_FOUND",
    )

    transaction = Transaction(
        org_id=actor.org_id,
        project_id=project.id,
        date=payload.date,
        type=payload.type.value,
        amount=payload.amount,
        currency=payload.currency,
        cost_type=payload.cost_type.value,
        description=payload.description,
        invoice_no=payload.invoice_no,
        vendor=payload.vendor,
        payment_status=PaymentStatus.PENDING.value,
        paid_amount=0,
    )
    db.add(transaction)
    db.flush()
    db.add(
        AuditEvent(
            org_id=actor.org_id,
            action="transaction_created",
            entity_type="transaction",
            entity_id=transaction.id,
            user_id=actor.user_id,
            details={"projectId": str(project.id), "type": transaction.type, "amount": str(payload.amount)},
        )
    )
    db.commit()
    db.refresh(transaction)
    return transaction


def update_payment_use_case(
    *,
    db: Session,
    transaction_id: UUID,
    payload: PaymentUpdate,
    actor: Actor,
) -> Transaction:
    """Record payment status, paid amount and proof of payment."""
    require_permission(actor, "canUpdatePayments", message="Only accountants can update payment status")
    transaction = get_transaction_or_404(db=db, transaction_id=transaction_id, org_id=actor.org_id)

    paid = Decimal(str(payload.paid_amount))
    if paid > Decimal(str(transaction.amount)):
        raise ValidationError(
            "Paid amount cannot exceed transaction amount",
            code="PAID_AMOUNT_EXCEEDS_AMOUNT",
            errors={"paid_amount": "must not exceed amount"},
        )

    old_status = transaction.payment_status
    transaction.payment_status = payload.payment_status.value
    transaction.paid_amount = paid
    transaction.payment_date = payload.payment_date
    if payload.attachments is not None:
        transaction.attachments = [attachment.model_dump() for attachment in payload.attachments]
    transaction.updated_at = func.now()

    db.add(
        AuditEvent(
            org_id=actor.org_id,
            action="transaction_payment_updated",
            entity_type="transaction",
            entity_id=transaction.id,
            user_id=actor.user_id,
            details={
                "oldStatus": old_status,
                "newStatus": transaction.payment_status,
                "paidAmount": str(paid),
            },
        )
    )
    db.commit()
    db.refresh(transaction)
    logger.info("transaction.payment id=%s status=%s", transaction.id, transaction.payment_status)
    return transaction
