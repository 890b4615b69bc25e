"""Approval state machine for purchase requests.

    Pending@1 --approve--> Pending@2 --approve--> Approved
    Pending@1|2 --reject--> Rejected

Approved and Rejected are terminal. Draft exists in the status model but is
never created by the workflow and cannot be decided.
"""
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from app.purchase_requests.domain.models import (
    Approval,
    AuditEntry,
    Decision,
    NotificationType,
    PRStatus,
    PurchaseRequest,
)
from app.shared.errors import InvalidTransition
from app.users.domain.models import User

NO_COMMENT = "No comment provided"


@dataclass(frozen=True)
class DecisionOutcome:
    request: PurchaseRequest
    approval: Approval
    audit_entry: AuditEntry
    notification_type: NotificationType


def pr_date_key(moment: datetime) -> str:
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y%m%d")


def format_pr_number(date_key: str, seq: int) -> str:
    return f"PR-{date_key}{seq:02d}"


def compute_total(lines: Iterable) -> float:
    return sum(line.quantity * line.estimated_price for line in lines)


def apply_decision(
    pr: PurchaseRequest,
    actor: User,
    decision: Decision,
    comment: Optional[str],
    id_generator: Callable[[], str],
    now: datetime,
) -> DecisionOutcome:
    if pr.status != PRStatus.PENDING:
        raise InvalidTransition(f"{pr.pr_number} is {pr.status.value} and can no longer be decided")

    comment = comment.strip() if comment else None
    step = pr.current_step

    approval = Approval(
        id=id_generator(),
        pr_id=pr.id,
        step=step,
        approver_id=actor.id,
        approver_name=actor.name,
        decision=decision,
        decided_at=now,
        comment=comment,
    )

    if decision == Decision.APPROVED:
        action = f"Step {step} Approved"
        if step >= pr.total_steps:
            status, next_step = PRStatus.APPROVED, step
            notification_type = NotificationType.PR_APPROVED
        else:
            status, next_step = PRStatus.PENDING, step + 1
            notification_type = NotificationType.PR_PENDING_APPROVAL
    else:
        action = f"PR Rejected at Step {step}"
        status, next_step = PRStatus.REJECTED, step
        notification_type = NotificationType.PR_REJECTED

    audit_entry = AuditEntry(
        id=id_generator(),
        pr_id=pr.id,
        action=action,
        user_id=actor.id,
        user_name=actor.name,
        timestamp=now,
        details=comment or NO_COMMENT,
    )

    request = replace(
        pr,
        status=status,
        current_step=next_step,
        updated_at=now,
        approvals=tuple(pr.approvals) + (approval,),
        audit_log=tuple(pr.audit_log) + (audit_entry,),
    )
    return DecisionOutcome(
        request=request,
        approval=approval,
        audit_entry=audit_entry,
        notification_type=notification_type,
    )
