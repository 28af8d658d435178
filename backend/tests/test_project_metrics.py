from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import Session

from siteflow.domain_errors import DomainError
from siteflow.services import project_metrics
from siteflow.services.project_metrics import compute_budget_metrics, normalize_budget_basis, round_progress


@pytest.mark.parametrize("budget_total", [None, 0, Decimal("0.00")])
def test_unbudgeted_project_is_never_over_budget(budget_total) -> None:
    metrics = compute_budget_metrics(budget_total, Decimal("1500000"))

    assert metrics.budget_used == Decimal("1500000")
    assert metrics.budget_used_pct is None
    assert metrics.budget_remaining is None
    assert metrics.is_over_budget is False


def test_budget_metrics_under_budget() -> None:
    metrics = compute_budget_metrics(Decimal("1000000.00"), Decimal("250000.00"))

    assert metrics.budget_used_pct == Decimal("25.00")
    assert metrics.budget_remaining == Decimal("750000.00")
    assert metrics.is_over_budget is False


def test_exactly_on_budget_is_100_and_not_over() -> None:
    metrics = compute_budget_metrics(Decimal("300.00"), Decimal("300.00"))

    assert metrics.budget_used_pct == Decimal("100.00")
    assert metrics.is_over_budget is False


def test_slightly_over_budget_rounds_above_100() -> None:
    metrics = compute_budget_metrics(Decimal("300000.00"), Decimal("300000.01"))

    assert metrics.budget_used_pct > 100
    assert metrics.is_over_budget is True
    assert metrics.budget_remaining == Decimal("-0.01")


def test_slightly_under_budget_rounds_below_100() -> None:
    metrics = compute_budget_metrics(Decimal("300000.00"), Decimal("299999.99"))

    assert metrics.budget_used_pct <= 100
    assert metrics.is_over_budget is False


@pytest.mark.parametrize(
    ("total", "used"),
    [
        ("3", "2.99"),
        ("3", "3.01"),
        ("7", "7"),
        ("0.03", "0.02"),
        ("999999.99", "1000000.00"),
        ("1000000.00", "999999.99"),
        ("12.34", "0"),
    ],
)
def test_pct_above_100_iff_used_above_total(total: str, used: str) -> None:
    metrics = compute_budget_metrics(Decimal(total), Decimal(used))

    assert (metrics.budget_used_pct > 100) == (Decimal(used) > Decimal(total))
    assert metrics.is_over_budget == (Decimal(used) > Decimal(total))


def test_budget_metrics_accept_floats() -> None:
    metrics = compute_budget_metrics(100.0, 50.5)

    assert metrics.budget_used_pct == Decimal("50.50")


def _compiled(query):
    compiled = query.statement.compile(dialect=postgresql.dialect())
    values: list = []
    for value in compiled.params.values():
        values.extend(value if isinstance(value, (list, tuple)) else [value])
    return str(compiled), values


def test_progress_query_weights_live_tasks_by_approved_logs() -> None:
    sql, values = _compiled(project_metrics._progress_query(Session(), org_id=uuid4()))

    assert "max(daily_log_tasks.progress)" in sql
    assert "daily_logs.status = " in sql and "APPROVED" in values
    assert "daily_logs.deleted_at IS NULL" in sql
    assert "daily_log_tasks.deleted_at IS NULL" in sql
    assert "tasks.deleted_at IS NULL" in sql
    assert "tasks.status != " in sql and "CANCELLED" in values
    assert "tasks.estimated_hours > " in sql
    assert "DONE" in values
    assert "coalesce(" in sql
    assert "LEFT OUTER JOIN" in sql
    assert "GROUP BY tasks.project_id" in sql


@pytest.mark.parametrize(("basis", "column"), [("paid", "paid_amount"), ("committed", "amount")])
def test_budget_used_sums_live_expenses_on_basis(basis: str, column: str) -> None:
    sql, values = _compiled(project_metrics._budget_used_query(Session(), org_id=uuid4(), basis=basis))

    assert f"sum(transactions.{column})" in sql
    assert "transactions.type = " in sql and "EXPENSE" in values
    assert "ADVANCE" not in values
    assert "transactions.deleted_at IS NULL" in sql
    assert "GROUP BY transactions.project_id" in sql


def test_kpi_query_rolls_up_every_live_project() -> None:
    sql, values = _compiled(project_metrics._kpi_query(Session(), org_id=uuid4(), basis="paid"))

    assert "FROM projects" in sql
    assert sql.count("LEFT OUTER JOIN") >= 2
    assert "projects.deleted_at IS NULL" in sql
    assert "projects.budget_total > " in sql
    assert "avg(" in sql and "round(CAST(" in sql
    assert "planning" in values and "in_progress" in values
    assert "sum(transactions.paid_amount)" in sql


class _RowsQuery:
    def __init__(self, rows=(), one=None) -> None:
        self._rows = list(rows)
        self._one = one
        self.filters = 0

    def filter(self, *_args, **_kwargs):
        self.filters += 1
        return self

    def all(self):
        return self._rows

    def one(self):
        return self._one


def test_load_progress_rounds_weighted_sums(monkeypatch) -> None:
    a, b, c = uuid4(), uuid4(), uuid4()
    rows = [
        # (30 * 1 + 10 * 0.5 + 1 * 0) / 41
        SimpleNamespace(project_id=a, done_weight=Decimal("35.0"), total_weight=Decimal("41")),
        SimpleNamespace(project_id=b, done_weight=Decimal("0"), total_weight=Decimal("0")),
        SimpleNamespace(project_id=c, done_weight=Decimal("2"), total_weight=Decimal("3")),
    ]
    monkeypatch.setattr(project_metrics, "_progress_query", lambda _db, *, org_id: _RowsQuery(rows))

    progress = project_metrics.load_progress(object(), org_id=uuid4(), project_ids=[a, b, c])

    assert progress == {a: 85.4, b: 0.0, c: 66.7}


def test_loaders_skip_the_database_for_an_empty_page() -> None:
    assert project_metrics.load_progress(None, org_id=uuid4(), project_ids=[]) == {}
    assert project_metrics.load_budget_used(None, org_id=uuid4(), project_ids=[]) == {}


def test_load_project_metrics_combines_progress_and_budget(monkeypatch) -> None:
    budgeted = SimpleNamespace(id=uuid4(), budget_total=Decimal("1000.00"))
    unbudgeted = SimpleNamespace(id=uuid4(), budget_total=None)
    monkeypatch.setattr(
        project_metrics,
        "_progress_query",
        lambda _db, *, org_id: _RowsQuery(
            [SimpleNamespace(project_id=budgeted.id, done_weight=Decimal("1"), total_weight=Decimal("4"))]
        ),
    )
    seen: list[str] = []

    def _budget_used_query(_db, *, org_id, basis):
        seen.append(basis)
        return _RowsQuery([SimpleNamespace(project_id=budgeted.id, budget_used=Decimal("1000.01"))])

    monkeypatch.setattr(project_metrics, "_budget_used_query", _budget_used_query)

    metrics = project_metrics.load_project_metrics(
        object(), [budgeted, unbudgeted], org_id=uuid4(), basis="committed"
    )

    assert seen == ["committed"]
    assert metrics[budgeted.id].progress_pct == 25.0
    assert metrics[budgeted.id].budget.is_over_budget is True
    assert metrics[budgeted.id].as_response_fields()["budget_used_pct"] > 100
    assert metrics[unbudgeted.id].progress_pct == 0.0
    assert metrics[unbudgeted.id].budget.budget_used == 0
    assert metrics[unbudgeted.id].budget.budget_used_pct is None


def test_load_project_kpis_maps_aggregate_row(monkeypatch) -> None:
    row = SimpleNamespace(
        total_projects=4,
        active_projects=3,
        avg_progress=Decimal("42.35"),
        total_budget=Decimal("5000000.00"),
        total_budget_used=Decimal("1250000.50"),
        over_budget_count=1,
    )
    monkeypatch.setattr(project_metrics, "_kpi_query", lambda _db, *, org_id, basis: _RowsQuery(one=row))

    kpis = project_metrics.load_project_kpis(object(), org_id=uuid4(), basis="committed")

    assert kpis == {
        "total_projects": 4,
        "active_projects": 3,
        "avg_progress": 42.4,
        "total_budget": 5000000.0,
        "total_budget_used": 1250000.5,
        "over_budget_count": 1,
        "budget_basis": "committed",
    }


def test_load_project_kpis_for_empty_tenant(monkeypatch) -> None:
    row = SimpleNamespace(
        total_projects=0,
        active_projects=None,
        avg_progress=0,
        total_budget=0,
        total_budget_used=0,
        over_budget_count=None,
    )
    monkeypatch.setattr(project_metrics, "_kpi_query", lambda _db, *, org_id, basis: _RowsQuery(one=row))

    kpis = project_metrics.load_project_kpis(object(), org_id=uuid4())

    assert kpis["total_projects"] == 0
    assert kpis["active_projects"] == 0
    assert kpis["avg_progress"] == 0.0
    assert kpis["over_budget_count"] == 0
    assert kpis["budget_basis"] == "paid"


def test_progress_is_zero_without_weight() -> None:
    assert round_progress(0, 0) == 0.0


def test_progress_rounds_to_one_decimal() -> None:
    assert round_progress(Decimal("1"), Decimal("3")) == 33.3
    assert round_progress(Decimal("2"), Decimal("3")) == 66.7


def test_budget_basis_defaults_to_paid() -> None:
    assert normalize_budget_basis(None) == "paid"
    assert normalize_budget_basis("Committed") == "committed"


def test_unknown_budget_basis_is_rejected() -> None:
    with pytest.raises(DomainError) as exc:
        normalize_budget_basis("forecast")

    assert exc.value.http_status == 400
    assert exc.value.code == "INVALID_BUDGET_BASIS"
