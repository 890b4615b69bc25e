"""Row-level access rules for purchase requests.

A user's visible set is described by a ``RequestScope``: a request is
visible when ANY populated clause matches. Repositories either evaluate
``RequestScope.matches`` directly or translate the clauses into a query.
"""
from dataclasses import dataclass
from typing import Optional

from app.purchase_requests.domain.models import PRStatus, PurchaseRequest, RequestFilters
from app.users.domain.models import User, UserRole

SUPERVISOR_STEP = 1
C_LEVEL_STEP = 2


@dataclass(frozen=True)
class RequestScope:
    everything: bool = False
    requester_id: Optional[str] = None
    department: Optional[str] = None
    pending_step: Optional[int] = None

    def matches(self, pr: PurchaseRequest) -> bool:
        if self.everything:
            return True
        if self.requester_id is not None and pr.requester_id == self.requester_id:
            return True
        if self.department is not None and pr.requester_department == self.department:
            return True
        if (
            self.pending_step is not None
            and pr.status == PRStatus.PENDING
            and pr.current_step == self.pending_step
        ):
            return True
        return False


NOTHING = RequestScope()


def scope_for(user: Optional[User]) -> RequestScope:
    if user is None:
        return NOTHING
    if user.role == UserRole.ADMIN:
        return RequestScope(everything=True)
    if user.role == UserRole.EMPLOYEE:
        return RequestScope(requester_id=user.id)
    if user.role == UserRole.SUPERVISOR:
        # Step-1 approvers also see pending first-step requests from other departments.
        return RequestScope(department=user.department, pending_step=SUPERVISOR_STEP)
    if user.role == UserRole.C_LEVEL:
        return RequestScope(pending_step=C_LEVEL_STEP)
    return NOTHING


def can_approve(user: Optional[User], pr: PurchaseRequest) -> bool:
    if user is None or pr.status != PRStatus.PENDING:
        return False
    if user.role == UserRole.SUPERVISOR:
        return (
            pr.current_step == SUPERVISOR_STEP
            and pr.requester_department == user.department
        )
    if user.role == UserRole.C_LEVEL:
        return pr.current_step == C_LEVEL_STEP
    return user.role == UserRole.ADMIN


def can_view(user: Optional[User], pr: PurchaseRequest) -> bool:
    if user is None:
        return False
    if scope_for(user).matches(pr) or pr.requester_id == user.id:
        return True
    return any(approval.approver_id == user.id for approval in pr.approvals)


def matches_filters(pr: PurchaseRequest, filters: RequestFilters) -> bool:
    if filters.status is not None and pr.status != filters.status:
        return False
    if filters.search and filters.search.strip():
        needle = filters.search.lower()
        haystacks = (pr.pr_number, pr.requester_name, pr.requester_department)
        return any(needle in value.lower() for value in haystacks)
    return True
