from typing import Optional, Protocol, Sequence

from app.purchase_requests.domain.models import (
    Approval,
    AuditEntry,
    Notification,
    PurchaseRequest,
    RequestFilters,
)
from app.purchase_requests.domain.visibility import RequestScope
from app.users.domain.models import User


class PurchaseRequestRepository(Protocol):
    """Persistence boundary for requests and their notifications.

    ``add_request`` stores the request with its items; approvals and audit
    entries are written through their own methods. Writes are staged until
    ``commit`` so a whole workflow step lands at once.
    """

    async def find_admin(self) -> Optional[User]:
        ...

    async def get_next_pr_number(self, date_key: str) -> tuple[str, int]:
        ...

    async def add_request(self, request: PurchaseRequest) -> None:
        ...

    async def get_request(self, pr_id: str) -> Optional[PurchaseRequest]:
        ...

    async def update_request_state(
        self, request: PurchaseRequest, expected_step: int
    ) -> bool:
        """Move a request still Pending at ``expected_step`` to its new state.

        Returns False when another writer decided that step first.
        """
        ...

    async def add_approval(self, approval: Approval) -> None:
        ...

    async def add_audit_entry(self, entry: AuditEntry) -> None:
        ...

    async def list_requests(
        self, scope: RequestScope, filters: RequestFilters
    ) -> Sequence[PurchaseRequest]:
        ...

    async def add_notification(self, notification: Notification) -> None:
        ...

    async def get_notification(self, notification_id: str) -> Optional[Notification]:
        ...

    async def mark_notification_read(self, notification_id: str) -> None:
        ...

    async def list_notifications(self, user_id: str) -> Sequence[Notification]:
        ...

    async def commit(self) -> None:
        ...

    async def rollback(self) -> None:
        ...
