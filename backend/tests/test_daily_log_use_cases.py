from __future__ import annotations

from datetime import date
from types import SimpleNamespace
from uuid import uuid4

import pytest

from siteflow.auth import Actor
from siteflow.domain_errors import DomainError
from siteflow.models import (
    AuditEvent,
    Category,
    DailyLog,
    DailyLogTask,
    MediaAsset,
    Project,
    Role,
    Task,
)
from siteflow.schemas import DailyLogCreate
from siteflow.use_cases.daily_log_transitions import (
    create_daily_log_use_case,
    transition_daily_log_use_case,
)


class _QueryStub:
    def __init__(self, session: "_SessionStub", model):
        self._session = session
        self._model = model

    def filter(self, *_args, **_kwargs):
        return self

    def first(self):
        rows = self._session.rows.get(self._model, [])
        return rows[0] if rows else None

    def all(self):
        return list(self._session.rows.get(self._model, []))

    def update(self, values, synchronize_session=None):
        if self._session.update_result is not None:
            return self._session.update_result
        for row in self._session.rows.get(self._model, []):
            for key, value in values.items():
                if key != "updated_at":
                    setattr(row, key, value)
        return 1


class _SessionStub:
    def __init__(self, *, rows=None, update_result=None):
        self.rows = {model: list(items) for model, items in (rows or {}).items()}
        self.update_result = update_result
        self.added = []
        self.commit_calls = 0
        self.rollback_calls = 0

    def query(self, model):
        if model in (Project, Category, Task, DailyLog, DailyLogTask):
            return _QueryStub(self, model)
        raise AssertionError(f"Unexpected query model: {model}")

    def add(self, obj):
        self.added.append(obj)
        if isinstance(obj, DailyLog):
            self.rows.setdefault(DailyLog, []).append(obj)

    def commit(self):
        self.commit_calls += 1

    def rollback(self):
        self.rollback_calls += 1

    def refresh(self, _obj):
        return None

    def added_of(self, model):
        return [obj for obj in self.added if isinstance(obj, model)]


def _actor(role: Role, *, org_id=None, bypass: bool = False) -> Actor:
    return Actor(org_id=org_id or uuid4(), user_id=uuid4(), role=role, bypass=bypass)


def _log(*, org_id, status="DRAFT"):
    return SimpleNamespace(
        id=uuid4(),
        org_id=org_id,
        project_id=uuid4(),
        category_id=uuid4(),
        date=date(2026, 3, 2),
        reporter_id=uuid4(),
        notes=None,
        media=[{"url": "https://cdn.example.com/a.jpg", "type": "image", "caption": None}],
        status=status,
        review_comment=None,
        qc_rating=None,
        deleted_at=None,
    )


def _create_payload(project_id, category_id, **overrides) -> DailyLogCreate:
    data = {
        "project_id": project_id,
        "category_id": category_id,
        "date": "2026-03-02",
        "notes": "Poured slab",
        "media": [
            {"url": "https://cdn.example.com/slab.jpg", "type": "image", "caption": "slab"},
            {"url": "https://cdn.example.com/slab.pdf", "type": "document"},
        ],
    }
    data.update(overrides)
    return DailyLogCreate(**data)


def test_review_scenario_from_draft_to_qc() -> None:
    org_id = uuid4()
    project = SimpleNamespace(id=uuid4(), org_id=org_id)
    category = SimpleNamespace(id=uuid4(), org_id=org_id, project_id=project.id)
    db = _SessionStub(rows={Project: [project], Category: [category]})

    log, links = create_daily_log_use_case(
        db=db,
        payload=_create_payload(project.id, category.id),
        actor=_actor(Role.ENGINEER, org_id=org_id),
    )
    assert log.status == "DRAFT"
    assert log.review_comment is None
    assert log.qc_rating is None
    assert links == []

    log = transition_daily_log_use_case(
        db=db, log_id=log.id, action="submit", actor=_actor(Role.ENGINEER, org_id=org_id)
    )
    assert log.status == "SUBMITTED"

    log = transition_daily_log_use_case(
        db=db, log_id=log.id, action="approve", comment="ok", actor=_actor(Role.PM, org_id=org_id)
    )
    assert log.status == "APPROVED"
    assert log.review_comment == "ok"

    log = transition_daily_log_use_case(
        db=db, log_id=log.id, action="qc", qc_rating=5, actor=_actor(Role.QC, org_id=org_id)
    )
    assert log.status == "APPROVED"
    assert log.qc_rating == 5

    actions = [event.action for event in db.added_of(AuditEvent)]
    assert actions == ["daily_log_created", "daily_log_submit", "daily_log_approve", "daily_log_qc"]
    assert db.commit_calls == 4


def test_create_sets_reporter_and_registers_media_assets() -> None:
    org_id = uuid4()
    project = SimpleNamespace(id=uuid4(), org_id=org_id)
    category = SimpleNamespace(id=uuid4(), org_id=org_id, project_id=project.id)
    db = _SessionStub(rows={Project: [project], Category: [category]})
    actor = _actor(Role.ENGINEER, org_id=org_id)

    log, _ = create_daily_log_use_case(db=db, payload=_create_payload(project.id, category.id), actor=actor)

    assert log.reporter_id == actor.user_id
    assets = db.added_of(MediaAsset)
    assert [asset.kind for asset in assets] == ["IMAGE", "DOCUMENT"]
    assert all(asset.daily_log_id == log.id for asset in assets)
    assert assets[0].meta == {"caption": "slab"}


def test_create_records_reported_tasks() -> None:
    org_id = uuid4()
    project = SimpleNamespace(id=uuid4(), org_id=org_id)
    category = SimpleNamespace(id=uuid4(), org_id=org_id, project_id=project.id)
    task = SimpleNamespace(id=uuid4(), org_id=org_id, category_id=category.id)
    db = _SessionStub(rows={Project: [project], Category: [category], Task: [task]})

    _, links = create_daily_log_use_case(
        db=db,
        payload=_create_payload(
            project.id,
            category.id,
            tasks=[{"task_id": str(task.id), "status": "IN_PROGRESS", "progress": 40}],
        ),
        actor=_actor(Role.ENGINEER, org_id=org_id),
    )

    assert len(links) == 1
    assert links[0].task_id == task.id
    assert links[0].progress == 40


def test_create_rejects_task_outside_category() -> None:
    org_id = uuid4()
    project = SimpleNamespace(id=uuid4(), org_id=org_id)
    category = SimpleNamespace(id=uuid4(), org_id=org_id, project_id=project.id)
    task = SimpleNamespace(id=uuid4(), org_id=org_id, category_id=uuid4())
    db = _SessionStub(rows={Project: [project], Category: [category], Task: [task]})

    with pytest.raises(DomainError, match="Tasks must belong to the selected category") as exc:
        create_daily_log_use_case(
            db=db,
            payload=_create_payload(project.id, category.id, tasks=[{"task_id": str(task.id)}]),
            actor=_actor(Role.ENGINEER, org_id=org_id),
        )

    assert exc.value.http_status == 400
    assert db.commit_calls == 0


def test_create_rejects_duplicate_tasks() -> None:
    org_id = uuid4()
    project = SimpleNamespace(id=uuid4(), org_id=org_id)
    category = SimpleNamespace(id=uuid4(), org_id=org_id, project_id=project.id)
    task_id = str(uuid4())
    db = _SessionStub(rows={Project: [project], Category: [category]})

    with pytest.raises(DomainError) as exc:
        create_daily_log_use_case(
            db=db,
            payload=_create_payload(project.id, category.id, tasks=[{"task_id": task_id}, {"task_id": task_id}]),
            actor=_actor(Role.ENGINEER, org_id=org_id),
        )

    assert exc.value.http_status == 400
    assert exc.value.code == "DUPLICATE_DAILY_LOG_TASK"


def test_create_rejects_category_of_other_project() -> None:
    org_id = uuid4()
    project = SimpleNamespace(id=uuid4(), org_id=org_id)
    category = SimpleNamespace(id=uuid4(), org_id=org_id, project_id=uuid4())
    db = _SessionStub(rows={Project: [project], Category: [category]})

    with pytest.raises(DomainError, match="Category does not belong to project") as exc:
        create_daily_log_use_case(
            db=db,
            payload=_create_payload(project.id, category.id),
            actor=_actor(Role.ENGINEER, org_id=org_id),
        )

    assert exc.value.http_status == 400


@pytest.mark.parametrize("role", [Role.PM, Role.SUPERVISOR, Role.QC, Role.ACCOUNTANT])
def test_create_forbidden_for_non_engineers(role: Role) -> None:
    db = _SessionStub()

    with pytest.raises(DomainError, match="Only engineers can create daily logs") as exc:
        create_daily_log_use_case(db=db, payload=_create_payload(uuid4(), uuid4()), actor=_actor(role))

    assert exc.value.http_status == 403
    assert db.added == []


def test_create_missing_project_is_404() -> None:
    db = _SessionStub()

    with pytest.raises(DomainError, match="Project not found") as exc:
        create_daily_log_use_case(db=db, payload=_create_payload(uuid4(), uuid4()), actor=_actor(Role.ENGINEER))

    assert exc.value.http_status == 404


def test_missing_log_is_404() -> None:
    db = _SessionStub()

    with pytest.raises(DomainError, match="Daily log not found or access denied") as exc:
        transition_daily_log_use_case(db=db, log_id=uuid4(), action="submit", actor=_actor(Role.ENGINEER))

    assert exc.value.http_status == 404
    assert exc.value.code == "DAILY_LOG_NOT_FOUND"


def test_unknown_action_checked_before_lookup() -> None:
    db = _SessionStub()

    with pytest.raises(DomainError) as exc:
        transition_daily_log_use_case(db=db, log_id=uuid4(), action="reopen", actor=_actor(Role.ADMIN))

    assert exc.value.http_status == 400


@pytest.mark.parametrize(
    ("action", "status", "role", "message"),
    [
        ("submit", "DRAFT", Role.PM, "Only engineers can submit daily logs"),
        ("approve", "SUBMITTED", Role.ENGINEER, "Only PM/Supervisor can approve daily logs"),
        ("decline", "SUBMITTED", Role.QC, "Only PM/Supervisor can decline daily logs"),
        ("qc", "APPROVED", Role.PM, "Only QC can rate daily logs"),
    ],
)
def test_role_outside_allow_list_is_forbidden(action: str, status: str, role: Role, message: str) -> None:
    org_id = uuid4()
    log = _log(org_id=org_id, status=status)
    db = _SessionStub(rows={DailyLog: [log]})

    # Payload is invalid on purpose: the role check wins.
    with pytest.raises(DomainError, match=message) as exc:
        transition_daily_log_use_case(
            db=db,
            log_id=log.id,
            action=action,
            comment=None,
            qc_rating=99,
            actor=_actor(role, org_id=org_id),
        )

    assert exc.value.http_status == 403
    assert log.status == status
    assert db.commit_calls == 0


def test_approve_on_draft_is_rejected_without_mutation() -> None:
    org_id = uuid4()
    log = _log(org_id=org_id, status="DRAFT")
    db = _SessionStub(rows={DailyLog: [log]})

    with pytest.raises(DomainError, match="Can only approve logs in SUBMITTED status") as exc:
        transition_daily_log_use_case(
            db=db, log_id=log.id, action="approve", comment="ok", actor=_actor(Role.PM, org_id=org_id)
        )

    assert exc.value.http_status == 400
    assert log.status == "DRAFT"
    assert log.review_comment is None
    assert db.added == []


def test_reapplying_submit_is_rejected() -> None:
    org_id = uuid4()
    log = _log(org_id=org_id, status="SUBMITTED")
    db = _SessionStub(rows={DailyLog: [log]})

    with pytest.raises(DomainError) as exc:
        transition_daily_log_use_case(db=db, log_id=log.id, action="submit", actor=_actor(Role.ENGINEER, org_id=org_id))

    assert exc.value.http_status == 400


def test_declined_log_cannot_be_resubmitted() -> None:
    org_id = uuid4()
    log = _log(org_id=org_id, status="DECLINED")
    db = _SessionStub(rows={DailyLog: [log]})

    with pytest.raises(DomainError, match="Can only submit logs in DRAFT status"):
        transition_daily_log_use_case(db=db, log_id=log.id, action="submit", actor=_actor(Role.ENGINEER, org_id=org_id))


def test_decline_without_comment_is_rejected() -> None:
    org_id = uuid4()
    log = _log(org_id=org_id, status="SUBMITTED")
    db = _SessionStub(rows={DailyLog: [log]})

    with pytest.raises(DomainError, match="Comment is required for decline") as exc:
        transition_daily_log_use_case(
            db=db, log_id=log.id, action="decline", comment="", actor=_actor(Role.SUPERVISOR, org_id=org_id)
        )

    assert exc.value.http_status == 400
    assert log.status == "SUBMITTED"


def test_decline_sets_terminal_status_and_comment() -> None:
    org_id = uuid4()
    log = _log(org_id=org_id, status="SUBMITTED")
    db = _SessionStub(rows={DailyLog: [log]})

    result = transition_daily_log_use_case(
        db=db, log_id=log.id, action="decline", comment="Blurry photos", actor=_actor(Role.PM, org_id=org_id)
    )

    assert result.status == "DECLINED"
    assert result.review_comment == "Blurry photos"


def test_lost_race_is_conflict_and_writes_nothing() -> None:
    org_id = uuid4()
    log = _log(org_id=org_id, status="SUBMITTED")
    db = _SessionStub(rows={DailyLog: [log]}, update_result=0)

    with pytest.raises(DomainError) as exc:
        transition_daily_log_use_case(
            db=db, log_id=log.id, action="approve", comment="ok", actor=_actor(Role.PM, org_id=org_id)
        )

    assert exc.value.http_status == 409
    assert exc.value.code == "DAILY_LOG_CONFLICT"
    assert db.rollback_calls == 1
    assert db.commit_calls == 0
    assert db.added_of(AuditEvent) == []


def test_bypass_actor_skips_role_check() -> None:
    org_id = uuid4()
    log = _log(org_id=org_id, status="DRAFT")
    db = _SessionStub(rows={DailyLog: [log]})

    result = transition_daily_log_use_case(
        db=db, log_id=log.id, action="submit", actor=_actor(Role.QC, org_id=org_id, bypass=True)
    )

    assert result.status == "SUBMITTED"
