"""Daily-log review workflow rules.

Pure helpers: no session access. The use case layer loads the log, applies
these checks in order and performs the guarded write.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

from ..domain_errors import ValidationError
from ..models import DailyLogStatus, Role


class WorkflowAction(str, enum.Enum):
    SUBMIT = "submit"
    APPROVE = "approve"
    DECLINE = "decline"
    QC = "qc"


@dataclass(frozen=True)
class TransitionRule:
    action: WorkflowAction
    required_status: DailyLogStatus
    target_status: DailyLogStatus
    allowed_roles: frozenset[Role]
    permission: str
    forbidden_message: str


TRANSITIONS: dict[WorkflowAction, TransitionRule] = {
    WorkflowAction.SUBMIT: TransitionRule(
        action=WorkflowAction.SUBMIT,
        required_status=DailyLogStatus.DRAFT,
        target_status=DailyLogStatus.SUBMITTED,
        allowed_roles=frozenset({Role.ENGINEER, Role.ADMIN}),
        permission="canSubmitDailyLogs",
        forbidden_message="Only engineers can submit daily logs",
    ),
    WorkflowAction.APPROVE: TransitionRule(
        action=WorkflowAction.APPROVE,
        required_status=DailyLogStatus.SUBMITTED,
        target_status=DailyLogStatus.APPROVED,
        allowed_roles=frozenset({Role.PM, Role.SUPERVISOR, Role.ADMIN}),
        permission="canReviewDailyLogs",
        forbidden_message="Only PM/Supervisor can approve daily logs",
    ),
    WorkflowAction.DECLINE: TransitionRule(
        action=WorkflowAction.DECLINE,
        required_status=DailyLogStatus.SUBMITTED,
        target_status=DailyLogStatus.DECLINED,
        allowed_roles=frozenset({Role.PM, Role.SUPERVISOR, Role.ADMIN}),
        permission="canReviewDailyLogs",
        forbidden_message="Only PM/Supervisor can decline daily logs",
    ),
    # qc leaves the status untouched.
    WorkflowAction.QC: TransitionRule(
        action=WorkflowAction.QC,
        required_status=DailyLogStatus.APPROVED,
        target_status=DailyLogStatus.APPROVED,
        allowed_roles=frozenset({Role.QC, Role.ADMIN}),
        permission="canRateDailyLogs",
        forbidden_message="Only QC can rate daily logs",
    ),
}

_COMMENT_REQUIRED_MESSAGES = {
    WorkflowAction.APPROVE: "Comment is required for approval",
    WorkflowAction.DECLINE: "Comment is required for decline",
}

QC_RATING_MIN = 1
QC_RATING_MAX = 5


def resolve_rule(action: WorkflowAction | str | None) -> TransitionRule:
    """Map a raw action to its rule; unknown actions are a 400."""
    try:
        key = WorkflowAction(str(action.value if isinstance(action, WorkflowAction) else action).strip().lower())
    except ValueError:
        raise ValidationError(
            f"Invalid action: {action}",
            code="INVALID_ACTION",
            errors={"action": f"Must be one of {', '.join(a.value for a in WorkflowAction)}"},
        )
    return TRANSITIONS[key]


def role_allowed(rule: TransitionRule, role: Role) -> bool:
    return role in rule.allowed_roles


def ensure_status(rule: TransitionRule, current_status: str | None) -> None:
    if current_status != rule.required_status.value:
        raise ValidationError(
            f"Can only {rule.action.value} logs in {rule.required_status.value} status",
            code="INVALID_STATUS_TRANSITION",
            details={
                "action": rule.action.value,
                "currentStatus": current_status,
                "requiredStatus": rule.required_status.value,
            },
        )


def validate_payload(rule: TransitionRule, *, comment: Any, qc_rating: Any) -> dict[str, Any]:
    """Validate the action payload and return the column values to write."""
    if rule.action in _COMMENT_REQUIRED_MESSAGES:
        text = comment.strip() if isinstance(comment, str) else ""
        if not text:
            raise ValidationError(
                _COMMENT_REQUIRED_MESSAGES[rule.action],
                errors={"comment": "required"},
            )
        return {"status": rule.target_status.value, "review_comment": text}

    if rule.action == WorkflowAction.QC:
        # bool is an int subclass; True is not a rating.
        if isinstance(qc_rating, bool) or not isinstance(qc_rating, int):
            raise ValidationError("QC rating must be between 1 and 5", errors={"qc_rating": "required"})
        if not QC_RATING_MIN <= qc_rating <= QC_RATING_MAX:
            raise ValidationError("QC rating must be between 1 and 5", errors={"qc_rating": "out of range"})
        return {"qc_rating": qc_rating}

    return {"status": rule.target_status.value}
