from __future__ import annotations

from datetime import date
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

import pytest

from siteflow.auth import Actor
from siteflow.domain_errors import DomainError
from siteflow.models import AuditEvent, Project, Role, Transaction
from siteflow.schemas import PaymentUpdate, TransactionCreate
from siteflow.use_cases.transactions import create_transaction_use_case, update_payment_use_case


class _QueryStub:
    def __init__(self, row) -> None:
        self._row = row

    def filter(self, *_args, **_kwargs):
        return self

    def first(self):
        return self._row


class _SessionStub:
    def __init__(self, *, project=None, transaction=None) -> None:
        self._rows = {Project: project, Transaction: transaction}
        self.added: list[object] = []
        self.commits = 0

    def query(self, model):
        if model not in self._rows:
            raise AssertionError(f"Unexpected model queried: {model}")
        return _QueryStub(self._rows[model])

    def add(self, obj) -> None:
        self.added.append(obj)

    def flush(self) -> None:
        for obj in self.added:
            if getattr(obj, "id", None) is None:
                obj.id = uuid4()

    def commit(self) -> None:
        self.commits += 1

    def refresh(self, _obj) -> None:
        return None


def _actor(role: Role, org_id=None) -> Actor:
    return Actor(org_id=org_id or uuid4(), user_id=uuid4(), role=role)


def _transaction(org_id, *, amount: str = "1000000") -> SimpleNamespace:
    return SimpleNamespace(
        id=uuid4(),
        org_id=org_id,
        amount=Decimal(amount),
        payment_status="PENDING",
        paid_amount=Decimal("0"),
        payment_date=None,
        attachments=None,
        updated_at=None,
    )


def _payment(**overrides) -> PaymentUpdate:
    data = {"payment_status": "PARTIAL", "paid_amount": 400000, "payment_date": date(2026, 3, 10)}
    data.update(overrides)
    return PaymentUpdate(**data)


def test_create_transaction_starts_pending_and_unpaid() -> None:
    actor = _actor(Role.ENGINEER)
    project = SimpleNamespace(id=uuid4(), org_id=actor.org_id)
    db = _SessionStub(project=project)

    transaction = create_transaction_use_case(
        db=db,
        payload=TransactionCreate(
            project_id=project.id,
            date=date(2026, 3, 9),
            type="EXPENSE",
            amount=1500000,
            cost_type="MATERIAL",
            vendor="Hoa Phat Steel",
        ),
        actor=actor,
    )

    assert transaction.payment_status == "PENDING"
    assert transaction.paid_amount == 0
    assert transaction.project_id == project.id
    assert transaction.org_id == actor.org_id
    audits = [obj for obj in db.added if isinstance(obj, AuditEvent)]
    assert [a.action for a in audits] == ["transaction_created"]
    assert db.commits == 1


def test_qc_cannot_create_transactions() -> None:
    db = _SessionStub(project=SimpleNamespace(id=uuid4()))

    with pytest.raises(DomainError) as exc:
        create_transaction_use_case(
            db=db,
            payload=TransactionCreate(
                project_id=uuid4(), date=date(2026, 3, 9), type="ADVANCE", amount=10, cost_type="OTHER"
            ),
            actor=_actor(Role.QC),
        )

    assert exc.value.http_status == 403
    assert db.added == []


def test_create_transaction_for_missing_project_is_404() -> None:
    with pytest.raises(DomainError) as exc:
        create_transaction_use_case(
            db=_SessionStub(project=None),
            payload=TransactionCreate(
                project_id=uuid4(), date=date(2026, 3, 9), type="EXPENSE", amount=10, cost_type="LABOR"
            ),
            actor=_actor(Role.ACCOUNTANT),
        )

    assert exc.value.http_status == 404
    assert exc.value.code == "PROJECT_NOT_FOUND"


def test_accountant_records_partial_payment() -> None:
    actor = _actor(Role.ACCOUNTANT)
    transaction = _transaction(actor.org_id)
    db = _SessionStub(transaction=transaction)

    result = update_payment_use_case(
        db=db,
        transaction_id=transaction.id,
        payload=_payment(attachments=[{"url": "https://cdn.example.com/receipt.pdf", "filename": "receipt.pdf"}]),
        actor=actor,
    )

    assert result.payment_status == "PARTIAL"
    assert result.paid_amount == Decimal("400000")
    assert result.payment_date == date(2026, 3, 10)
    assert result.attachments == [{"url": "https://cdn.example.com/receipt.pdf", "filename": "receipt.pdf"}]
    audit = next(obj for obj in db.added if isinstance(obj, AuditEvent))
    assert audit.details["oldStatus"] == "PENDING"
    assert audit.details["newStatus"] == "PARTIAL"


def test_full_payment_equal_to_amount_is_allowed() -> None:
    actor = _actor(Role.ACCOUNTANT)
    transaction = _transaction(actor.org_id, amount="250.50")

    result = update_payment_use_case(
        db=_SessionStub(transaction=transaction),
        transaction_id=transaction.id,
        payload=_payment(payment_status="PAID", paid_amount=250.5),
        actor=actor,
    )

    assert result.paid_amount == Decimal("250.5")


def test_paid_amount_cannot_exceed_amount() -> None:
    actor = _actor(Role.ACCOUNTANT)
    transaction = _transaction(actor.org_id, amount="100")
    db = _SessionStub(transaction=transaction)

    with pytest.raises(DomainError) as exc:
        update_payment_use_case(
            db=db,
            transaction_id=transaction.id,
            payload=_payment(payment_status="PAID", paid_amount=100.01),
            actor=actor,
        )

    assert exc.value.http_status == 400
    assert exc.value.code == "PAID_AMOUNT_EXCEEDS_AMOUNT"
    assert transaction.payment_status == "PENDING"
    assert db.commits == 0


@pytest.mark.parametrize("role", [Role.ENGINEER, Role.PM, Role.SUPERVISOR, Role.QC])
def test_only_accountants_update_payments(role: Role) -> None:
    actor = _actor(role)
    transaction = _transaction(actor.org_id)

    with pytest.raises(DomainError, match="Only accountants can update payment status") as exc:
        update_payment_use_case(
            db=_SessionStub(transaction=transaction),
            transaction_id=transaction.id,
            payload=_payment(),
            actor=actor,
        )

    assert exc.value.http_status == 403


def test_payment_update_rejects_non_http_attachment() -> None:
    with pytest.raises(ValueError):
        _payment(attachments=[{"url": "ftp://files.example.com/receipt.pdf"}])
