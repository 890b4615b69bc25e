from dataclasses import replace
from typing import Callable, Dict, List, Optional, Sequence

from app.purchase_requests.application.ports import PurchaseRequestRepository
from app.purchase_requests.domain.models import (
    Approval,
    AuditEntry,
    Notification,
    PRStatus,
    PurchaseRequest,
    RequestFilters,
)
from app.purchase_requests.domain.visibility import RequestScope, matches_filters
from app.purchase_requests.domain.workflow import format_pr_number
from app.shared.memory_store import InMemoryStore
from app.users.domain.models import User, UserRole


class InMemoryPurchaseRequestRepository(PurchaseRequestRepository):
    """Repository over ``InMemoryStore``.

    Writes are queued and applied by ``commit`` in one synchronous pass, so
    other coroutines never observe half of a workflow step. Dropping the
    repository without committing discards the queued writes.
    """

    def __init__(self, store: InMemoryStore) -> None:
        self._store = store
        self._pending: List[Callable[[], None]] = []
        self._reserved: Dict[str, int] = {}

    async def find_admin(self) -> Optional[User]:
        for user in self._store.users.values():
            if user.role == UserRole.ADMIN:
                return user
        return None

    async def get_next_pr_number(self, date_key: str) -> tuple[str, int]:
        last_seq = max(self._store.pr_sequence.get(date_key, 0), self._reserved.get(date_key, 0))
        next_seq = last_seq + 1
        self._reserved[date_key] = next_seq
        self._pending.append(lambda: self._bump_sequence(date_key, next_seq))
        return format_pr_number(date_key, next_seq), next_seq

    def _bump_sequence(self, date_key: str, seq: int) -> None:
        self._store.pr_sequence[date_key] = max(self._store.pr_sequence.get(date_key, 0), seq)

    async def add_request(self, request: PurchaseRequest) -> None:
        stored = replace(request, items=tuple(request.items), approvals=(), audit_log=())
        self._pending.append(lambda: self._store.requests.__setitem__(stored.id, stored))

    async def get_request(self, pr_id: str) -> Optional[PurchaseRequest]:
        return self._store.requests.get(pr_id)

    async def update_request_state(
        self, request: PurchaseRequest, expected_step: int
    ) -> bool:
        stored = self._store.requests.get(request.id)
        if (
            stored is None
            or stored.status != PRStatus.PENDING
            or stored.current_step != expected_step
        ):
            return False

        def apply() -> None:
            current = self._store.requests[request.id]
            self._store.requests[request.id] = replace(
                current,
                status=request.status,
                current_step=request.current_step,
                updated_at=request.updated_at,
            )

        self._pending.append(apply)
        return True

    async def add_approval(self, approval: Approval) -> None:
        def apply() -> None:
            current = self._store.requests[approval.pr_id]
            self._store.requests[approval.pr_id] = replace(
                current, approvals=tuple(current.approvals) + (approval,)
            )

        self._pending.append(apply)

    async def add_audit_entry(self, entry: AuditEntry) -> None:
        def apply() -> None:
            current = self._store.requests[entry.pr_id]
            self._store.requests[entry.pr_id] = replace(
                current, audit_log=tuple(current.audit_log) + (entry,)
            )

        self._pending.append(apply)

    async def list_requests(
        self, scope: RequestScope, filters: RequestFilters
    ) -> Sequence[PurchaseRequest]:
        requests = [
            pr
            for pr in self._store.requests.values()
            if scope.matches(pr) and matches_filters(pr, filters)
        ]
        return sorted(requests, key=lambda pr: pr.created_at, reverse=True)

    async def add_notification(self, notification: Notification) -> None:
        self._pending.append(
            lambda: self._store.notifications.__setitem__(notification.id, notification)
        )

    async def get_notification(self, notification_id: str) -> Optional[Notification]:
        return self._store.notifications.get(notification_id)

    async def mark_notification_read(self, notification_id: str) -> None:
        def apply() -> None:
            current = self._store.notifications[notification_id]
            self._store.notifications[notification_id] = replace(current, read=True)

        self._pending.append(apply)

    async def list_notifications(self, user_id: str) -> Sequence[Notification]:
        return [n for n in self._store.notifications.values() if n.user_id == user_id]

    async def commit(self) -> None:
        pending, self._pending = self._pending, []
        self._reserved.clear()
        for apply in pending:
            apply()

    async def rollback(self) -> None:
        self._pending = []
        self._reserved.clear()
