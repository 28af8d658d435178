from __future__ import annotations

from datetime import date
from types import SimpleNamespace
from uuid import uuid4

import pytest

from siteflow.auth import Actor
from siteflow.domain_errors import DomainError
from siteflow.models import AuditEvent, Category, Project, Role, Task, User
from siteflow.schemas import ProjectCreate, ProjectUpdate, TaskCreate
from siteflow.use_cases.project_catalog import (
    create_project_use_case,
    create_task_use_case,
    update_project_use_case,
)


class _QueryStub:
    def __init__(self, row) -> None:
        self._row = row

    def filter(self, *_args, **_kwargs):
        return self

    def first(self):
        return self._row


class _SessionStub:
    def __init__(self, rows: dict | None = None) -> None:
        self._rows = rows or {}
        self.added: list[object] = []
        self.commits = 0

    def query(self, model):
        return _QueryStub(self._rows.get(model))

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

    def audit_actions(self) -> list[str]:
        return [obj.action for obj in self.added if isinstance(obj, AuditEvent)]


def _actor(role: Role = Role.PM) -> Actor:
    return Actor(org_id=uuid4(), user_id=uuid4(), role=role)


def _project(org_id, **overrides) -> SimpleNamespace:
    data = dict(
        id=uuid4(),
        org_id=org_id,
        name="Riverside Villa",
        status="planning",
        start_date=date(2026, 3, 1),
        end_date=date(2026, 9, 30),
        currency="VND",
        budget_total=None,
        updated_at=None,
    )
    data.update(overrides)
    return SimpleNamespace(**data)


def test_pm_creates_project_with_defaults() -> None:
    actor = _actor()
    db = _SessionStub()

    project = create_project_use_case(
        db=db,
        payload=ProjectCreate(name="Riverside Villa", start_date=date(2026, 3, 1), scale={"floors": 3}),
        actor=actor,
    )

    assert project.org_id == actor.org_id
    assert project.status == "planning"
    assert project.currency == "VND"
    assert project.scale == {"floors": 3}
    assert db.audit_actions() == ["project_created"]
    assert db.commits == 1


@pytest.mark.parametrize("role", [Role.ENGINEER, Role.SUPERVISOR, Role.QC, Role.ACCOUNTANT])
def test_only_pm_and_admin_create_projects(role: Role) -> None:
    with pytest.raises(DomainError) as exc:
        create_project_use_case(
            db=_SessionStub(),
            payload=ProjectCreate(name="X", start_date=date(2026, 3, 1)),
            actor=_actor(role),
        )

    assert exc.value.http_status == 403


def test_create_project_rejects_end_before_start() -> None:
    with pytest.raises(ValueError, match="Start date must be before or equal to end date"):
        ProjectCreate(name="X", start_date=date(2026, 3, 2), end_date=date(2026, 3, 1))


def test_update_checks_date_order_against_stored_values() -> None:
    actor = _actor()
    project = _project(actor.org_id)
    db = _SessionStub({Project: project})

    with pytest.raises(DomainError, match="Start date must be before or equal to end date"):
        update_project_use_case(
            db=db,
            project_id=project.id,
            payload=ProjectUpdate(start_date=date(2026, 10, 1)),
            actor=actor,
        )

    assert project.start_date == date(2026, 3, 1)
    assert db.commits == 0


def test_update_merges_only_provided_fields() -> None:
    actor = _actor()
    project = _project(actor.org_id)
    db = _SessionStub({Project: project})

    updated = update_project_use_case(
        db=db,
        project_id=project.id,
        payload=ProjectUpdate(status="in_progress", budget_total=500000000),
        actor=actor,
    )

    assert updated.status == "in_progress"
    assert updated.budget_total == 500000000
    assert updated.name == "Riverside Villa"
    assert updated.updated_at is not None
    assert db.audit_actions() == ["project_updated"]


def test_update_refuses_to_null_required_field() -> None:
    actor = _actor()
    project = _project(actor.org_id)

    with pytest.raises(DomainError) as exc:
        update_project_use_case(
            db=_SessionStub({Project: project}),
            project_id=project.id,
            payload=ProjectUpdate(name=None),
            actor=actor,
        )

    assert exc.value.http_status == 400
    assert exc.value.errors == {"name": "required"}


def test_update_missing_project_is_404() -> None:
    with pytest.raises(DomainError) as exc:
        update_project_use_case(
            db=_SessionStub(),
            project_id=uuid4(),
            payload=ProjectUpdate(name="Renamed"),
            actor=_actor(),
        )

    assert exc.value.code == "PROJECT_NOT_FOUND"


def test_task_inherits_project_from_category() -> None:
    actor = _actor(Role.ENGINEER)
    project = _project(actor.org_id)
    category = SimpleNamespace(id=uuid4(), org_id=actor.org_id, project_id=project.id)
    db = _SessionStub({Category: category, Project: project})

    task = create_task_use_case(
        db=db,
        payload=TaskCreate(category_id=category.id, name="Rebar", estimated_hours=16),
        actor=actor,
    )

    assert isinstance(task, Task)
    assert task.project_id == project.id
    assert task.category_id == category.id
    assert task.status == "WAITING"
    assert db.audit_actions() == ["task_created"]


def test_task_assignee_must_be_in_organization() -> None:
    actor = _actor(Role.SUPERVISOR)
    project = _project(actor.org_id)
    category = SimpleNamespace(id=uuid4(), org_id=actor.org_id, project_id=project.id)
    db = _SessionStub({Category: category, Project: project, User: None})

    with pytest.raises(DomainError) as exc:
        create_task_use_case(
            db=db,
            payload=TaskCreate(category_id=category.id, name="Rebar", assigned_to=uuid4()),
            actor=actor,
        )

    assert exc.value.http_status == 400
    assert "assigned_to" in exc.value.errors
