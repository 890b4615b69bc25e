from typing import Dict, List, Optional, Sequence

from sqlalchemy import and_, desc, false, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.purchase_requests.application.ports import PurchaseRequestRepository
from app.purchase_requests.domain.models import (
    Approval,
    AuditEntry,
    Decision,
    Notification,
    NotificationType,
    PRItem,
    PRStatus,
    Priority,
    PurchaseRequest,
    RequestFilters,
)
from app.purchase_requests.domain.visibility import RequestScope
from app.purchase_requests.domain.workflow import format_pr_number
from app.shared.errors import ConflictError
from app.users.domain.models import User, UserRole
from app.users.infrastructure.sqlalchemy_repository import to_domain_user
from database import (
    Approval as ApprovalModel,
    AuditLog as AuditLogModel,
    Notification as NotificationModel,
    PRItem as PRItemModel,
    PurchaseRequest as PurchaseRequestModel,
    User as UserModel,
)


def _scope_clause(scope: RequestScope):
    if scope.everything:
        return None
    clauses = []
    if scope.requester_id is not None:
        clauses.append(PurchaseRequestModel.requester_id == scope.requester_id)
    if scope.department is not None:
        clauses.append(PurchaseRequestModel.requester_department == scope.department)
    if scope.pending_step is not None:
        clauses.append(
            and_(
                PurchaseRequestModel.status == PRStatus.PENDING.value,
                PurchaseRequestModel.current_step == scope.pending_step,
            )
        )
    if not clauses:
        return false()
    return or_(*clauses)


def _to_notification(row: NotificationModel) -> Notification:
    return Notification(
        id=row.id,
        user_id=row.user_id,
        type=NotificationType(row.type),
        title=row.title,
        message=row.message,
        pr_id=row.pr_id,
        pr_number=row.pr_number,
        read=row.read,
        created_at=row.created_at,
    )


class SqlAlchemyPurchaseRequestRepository(PurchaseRequestRepository):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_admin(self) -> Optional[User]:
        result = await self._session.execute(
            select(UserModel)
            .where(UserModel.role == UserRole.ADMIN.value)
            .order_by(UserModel.created_at, UserModel.id)
            .limit(1)
        )
        row = result.scalar_one_or_none()
        if row is None:
            return None
        return to_domain_user(row)

    async def get_next_pr_number(self, date_key: str) -> tuple[str, int]:
        result = await self._session.execute(
            select(func.max(PurchaseRequestModel.pr_seq)).where(
                PurchaseRequestModel.pr_date == date_key
            )
        )
        max_seq = result.scalar() or 0
        next_seq = max_seq + 1
        return format_pr_number(date_key, next_seq), next_seq

    async def add_request(self, request: PurchaseRequest) -> None:
        self._session.add(
            PurchaseRequestModel(
                id=request.id,
                pr_number=request.pr_number,
                pr_date=request.pr_date,
                pr_seq=request.pr_seq,
                requester_id=request.requester_id,
                requester_name=request.requester_name,
                requester_position=request.requester_position,
                requester_department=request.requester_department,
                requester_email=request.requester_email,
                status=request.status.value,
                current_step=request.current_step,
                total_steps=request.total_steps,
                total_amount=request.total_amount,
                created_at=request.created_at,
                updated_at=request.updated_at,
            )
        )
        # Children reference the request row, so it must be flushed first.
        await self._flush_new_request(request)

        for index, item in enumerate(request.items):
            self._session.add(
                PRItemModel(
                    id=item.id,
                    pr_id=request.id,
                    product_name=item.product_name,
                    quantity=item.quantity,
                    unit=item.unit,
                    estimated_price=item.estimated_price,
                    priority=item.priority.value,
                    image=item.image,
                    item_index=index,
                )
            )

    async def get_request(self, pr_id: str) -> Optional[PurchaseRequest]:
        result = await self._session.execute(
            select(PurchaseRequestModel).where(PurchaseRequestModel.id == pr_id)
        )
        row = result.scalar_one_or_none()
        if row is None:
            return None
        requests = await self._hydrate([row])
        return requests[0]

    async def update_request_state(
        self, request: PurchaseRequest, expected_step: int
    ) -> bool:
        # Only a request still Pending at the step read earlier moves on.
        result = await self._session.execute(
            update(PurchaseRequestModel)
            .where(
                PurchaseRequestModel.id == request.id,
                PurchaseRequestModel.status == PRStatus.PENDING.value,
                PurchaseRequestModel.current_step == expected_step,
            )
            .values(
                status=request.status.value,
                current_step=request.current_step,
                updated_at=request.updated_at,
            )
        )
        return result.rowcount == 1

    async def add_approval(self, approval: Approval) -> None:
        self._session.add(
            ApprovalModel(
                id=approval.id,
                pr_id=approval.pr_id,
                step=approval.step,
                approver_id=approval.approver_id,
                approver_name=approval.approver_name,
                decision=approval.decision.value,
                comment=approval.comment,
                decided_at=approval.decided_at,
            )
        )

    async def add_audit_entry(self, entry: AuditEntry) -> None:
        self._session.add(
            AuditLogModel(
                id=entry.id,
                pr_id=entry.pr_id,
                action=entry.action,
                user_id=entry.user_id,
                user_name=entry.user_name,
                details=entry.details,
                timestamp=entry.timestamp,
            )
        )

    async def list_requests(
        self, scope: RequestScope, filters: RequestFilters
    ) -> Sequence[PurchaseRequest]:
        query = select(PurchaseRequestModel)

        clause = _scope_clause(scope)
        if clause is not None:
            query = query.where(clause)
        if filters.status is not None:
            query = query.where(PurchaseRequestModel.status == filters.status.value)
        if filters.search and filters.search.strip():
            term = filters.search
            query = query.where(
                or_(
                    PurchaseRequestModel.pr_number.icontains(term, autoescape=True),
                    PurchaseRequestModel.requester_name.icontains(term, autoescape=True),
                    PurchaseRequestModel.requester_department.icontains(term, autoescape=True),
                )
            )

        query = query.order_by(desc(PurchaseRequestModel.created_at))
        result = await self._session.execute(query)
        return await self._hydrate(result.scalars().all())

    async def _hydrate(self, rows: Sequence[PurchaseRequestModel]) -> List[PurchaseRequest]:
        request_ids = [row.id for row in rows]
        items_by_request: Dict[str, List[PRItem]] = {}
        approvals_by_request: Dict[str, List[Approval]] = {}
        audit_by_request: Dict[str, List[AuditEntry]] = {}

        if request_ids:
            items_result = await self._session.execute(
                select(PRItemModel)
                .where(PRItemModel.pr_id.in_(request_ids))
                .order_by(PRItemModel.pr_id, PRItemModel.item_index)
            )
            for item in items_result.scalars().all():
                items_by_request.setdefault(item.pr_id, []).append(
                    PRItem(
                        id=item.id,
                        pr_id=item.pr_id,
                        product_name=item.product_name,
                        quantity=item.quantity,
                        unit=item.unit,
                        estimated_price=item.estimated_price,
                        priority=Priority(item.priority),
                        image=item.image,
                    )
                )

            approvals_result = await self._session.execute(
                select(ApprovalModel)
                .where(ApprovalModel.pr_id.in_(request_ids))
                .order_by(ApprovalModel.decided_at, ApprovalModel.step)
            )
            for approval in approvals_result.scalars().all():
                approvals_by_request.setdefault(approval.pr_id, []).append(
                    Approval(
                        id=approval.id,
                        pr_id=approval.pr_id,
                        step=approval.step,
                        approver_id=approval.approver_id,
                        approver_name=approval.approver_name,
                        decision=Decision(approval.decision),
                        comment=approval.comment,
                        decided_at=approval.decided_at,
                    )
                )

            audit_result = await self._session.execute(
                select(AuditLogModel)
                .where(AuditLogModel.pr_id.in_(request_ids))
                .order_by(AuditLogModel.timestamp)
            )
            for entry in audit_result.scalars().all():
                audit_by_request.setdefault(entry.pr_id, []).append(
                    AuditEntry(
                        id=entry.id,
                        pr_id=entry.pr_id,
                        action=entry.action,
                        user_id=entry.user_id,
                        user_name=entry.user_name,
                        details=entry.details,
                        timestamp=entry.timestamp,
                    )
                )

        return [
            PurchaseRequest(
                id=row.id,
                pr_number=row.pr_number,
                pr_date=row.pr_date,
                pr_seq=row.pr_seq,
                requester_id=row.requester_id,
                requester_name=row.requester_name,
                requester_position=row.requester_position,
                requester_department=row.requester_department,
                requester_email=row.requester_email,
                status=PRStatus(row.status),
                current_step=row.current_step,
                total_steps=row.total_steps,
                total_amount=row.total_amount,
                created_at=row.created_at,
                updated_at=row.updated_at,
                items=tuple(items_by_request.get(row.id, [])),
                approvals=tuple(approvals_by_request.get(row.id, [])),
                audit_log=tuple(audit_by_request.get(row.id, [])),
            )
            for row in rows
        ]

    async def add_notification(self, notification: Notification) -> None:
        self._session.add(
            NotificationModel(
                id=notification.id,
                user_id=notification.user_id,
                type=notification.type.value,
                title=notification.title,
                message=notification.message,
                pr_id=notification.pr_id,
                pr_number=notification.pr_number,
                read=notification.read,
                created_at=notification.created_at,
            )
        )

    async def get_notification(self, notification_id: str) -> Optional[Notification]:
        result = await self._session.execute(
            select(NotificationModel).where(NotificationModel.id == notification_id)
        )
        row = result.scalar_one_or_none()
        if row is None:
            return None
        return _to_notification(row)

    async def mark_notification_read(self, notification_id: str) -> None:
        await self._session.execute(
            update(NotificationModel)
            .where(NotificationModel.id == notification_id)
            .values(read=True)
        )

    async def list_notifications(self, user_id: str) -> Sequence[Notification]:
        result = await self._session.execute(
            select(NotificationModel)
            .where(NotificationModel.user_id == user_id)
            .order_by(desc(NotificationModel.created_at))
        )
        return [_to_notification(row) for row in result.scalars().all()]

    async def _flush_new_request(self, request: PurchaseRequest) -> None:
        try:
            await self._session.flush()
        except IntegrityError as exc:
            raise ConflictError(f"{request.pr_number} was taken by another request") from exc

    async def commit(self) -> None:
        try:
            await self._session.commit()
        except IntegrityError as exc:
            raise ConflictError("The purchase request conflicts with a concurrent change") from exc

    async def rollback(self) -> None:
        await self._session.rollback()
