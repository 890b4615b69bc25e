import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Sequence

from app.purchase_requests.application.ports import PurchaseRequestRepository
from app.purchase_requests.domain.models import (
    MAX_ITEMS,
    AuditEntry,
    DashboardMetrics,
    Decision,
    Notification,
    NotificationType,
    PRItem,
    PRStatus,
    Priority,
    PurchaseRequest,
    RequestFilters,
)
from app.purchase_requests.domain.notifications import fan_out
from app.purchase_requests.domain.visibility import (
    RequestScope,
    can_approve,
    can_view,
    scope_for,
)
from app.purchase_requests.domain.workflow import (
    apply_decision,
    compute_total,
    pr_date_key,
)
from app.shared.errors import (
    ConflictError,
    InvalidTransition,
    NoCurrentUserError,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from app.users.application.ports import UserRepository
from app.users.domain.models import User, UserRole

logger = logging.getLogger(__name__)

# A PR number read from storage can be claimed by a concurrent submission.
MAX_NUMBERING_ATTEMPTS = 3


@dataclass(frozen=True)
class PRItemInput:
    product_name: str
    quantity: int = 1
    unit: str = "pieces"
    estimated_price: float = 0.0
    priority: Priority = Priority.MEDIUM
    image: Optional[str] = None


@dataclass(frozen=True)
class CreatePurchaseRequestCommand:
    items: Sequence[PRItemInput]


@dataclass(frozen=True)
class ListPurchaseRequestsQuery:
    user_id: Optional[str] = None
    status: Optional[PRStatus] = None
    search: Optional[str] = None


IdGenerator = Callable[[], str]
Clock = Callable[[], datetime]


def _require_active_user(current_user: Optional[User]) -> User:
    if current_user is None:
        raise NoCurrentUserError("No current user is set")
    if not current_user.is_active:
        raise PermissionDenied("This account has been deactivated")
    return current_user


async def _resolve_subject(
    users: UserRepository,
    current_user: User,
    user_id: Optional[str],
) -> User:
    """Admins may look at another user's view; everyone else sees their own."""
    if user_id is None or user_id == current_user.id:
        return current_user
    if current_user.role != UserRole.ADMIN:
        raise PermissionDenied("You can only view your own data")
    subject = await users.get_user(user_id)
    if subject is None:
        raise NotFoundError("User not found")
    return subject


def validate_items(items: Sequence[PRItemInput]) -> None:
    if not items:
        raise ValidationError("At least one item is required")
    if len(items) > MAX_ITEMS:
        raise ValidationError(f"Maximum {MAX_ITEMS} items allowed per PR")

    for position, item in enumerate(items, start=1):
        if not item.product_name or not item.product_name.strip():
            raise ValidationError(f"Product name is required for item {position}")
        if item.quantity is None or item.quantity <= 0:
            raise ValidationError(f"Quantity must be greater than 0 for item {position}")
        if item.estimated_price is None or item.estimated_price < 0:
            raise ValidationError(f"Price cannot be negative for item {position}")


class CreatePurchaseRequestUseCase:
    def __init__(
        self,
        repository: PurchaseRequestRepository,
        id_generator: IdGenerator,
        clock: Clock,
    ) -> None:
        self._repository = repository
        self._id_generator = id_generator
        self._clock = clock

    async def execute(
        self,
        command: CreatePurchaseRequestCommand,
        current_user: Optional[User],
    ) -> PurchaseRequest:
        requester = _require_active_user(current_user)
        validate_items(command.items)

        now = self._clock()
        for attempt in range(1, MAX_NUMBERING_ATTEMPTS + 1):
            try:
                request = await self._submit(command, requester, now)
                break
            except ConflictError:
                await self._repository.rollback()
                if attempt == MAX_NUMBERING_ATTEMPTS:
                    raise
                logger.warning("PR number clash on attempt %d, retrying", attempt)

        logger.info(
            "PR %s created by %s for %.2f",
            request.pr_number,
            requester.name,
            request.total_amount,
        )
        return request

    async def _submit(
        self,
        command: CreatePurchaseRequestCommand,
        requester: User,
        now: datetime,
    ) -> PurchaseRequest:
        date_key = pr_date_key(now)
        pr_number, pr_seq = await self._repository.get_next_pr_number(date_key)
        pr_id = self._id_generator()

        items = tuple(
            PRItem(
                id=f"{pr_id}-{index}",
                pr_id=pr_id,
                product_name=item.product_name.strip(),
                quantity=item.quantity,
                unit=item.unit,
                estimated_price=item.estimated_price,
                priority=item.priority,
                image=item.image,
            )
            for index, item in enumerate(command.items)
        )
        audit_entry = AuditEntry(
            id=self._id_generator(),
            pr_id=pr_id,
            action="PR Created",
            user_id=requester.id,
            user_name=requester.name,
            timestamp=now,
            details="Purchase request submitted for approval",
        )

        request = PurchaseRequest(
            id=pr_id,
            pr_number=pr_number,
            pr_date=date_key,
            pr_seq=pr_seq,
            requester_id=requester.id,
            requester_name=requester.name,
            requester_position=requester.position,
            requester_department=requester.department,
            requester_email=requester.email,
            status=PRStatus.PENDING,
            current_step=1,
            total_amount=compute_total(items),
            created_at=now,
            updated_at=now,
            items=items,
            audit_log=(audit_entry,),
        )

        await self._repository.add_request(request)
        await self._repository.add_audit_entry(audit_entry)

        admin = await self._repository.find_admin()
        for notification in fan_out(
            request, NotificationType.PR_SUBMITTED, admin, self._id_generator, now
        ):
            await self._repository.add_notification(notification)

        await self._repository.commit()
        return request


class DecidePurchaseRequestUseCase:
    def __init__(
        self,
        repository: PurchaseRequestRepository,
        id_generator: IdGenerator,
        clock: Clock,
    ) -> None:
        self._repository = repository
        self._id_generator = id_generator
        self._clock = clock

    async def execute(
        self,
        pr_id: str,
        decision: Decision,
        current_user: Optional[User],
        comment: Optional[str] = None,
    ) -> PurchaseRequest:
        actor = _require_active_user(current_user)

        request = await self._repository.get_request(pr_id)
        if request is None:
            raise NotFoundError("Purchase request not found")

        if request.status == PRStatus.PENDING and not can_approve(actor, request):
            logger.warning(
                "%s (%s) may not decide %s at step %s",
                actor.name,
                actor.role.value,
                request.pr_number,
                request.current_step,
            )
            raise PermissionDenied("You are not allowed to decide this request at its current step")

        now = self._clock()
        try:
            outcome = apply_decision(
                request, actor, decision, comment, self._id_generator, now
            )
        except InvalidTransition:
            logger.warning("Rejected decision on %s in state %s", request.pr_number, request.status.value)
            raise

        moved = await self._repository.update_request_state(
            outcome.request, expected_step=request.current_step
        )
        if not moved:
            await self._repository.rollback()
            logger.warning(
                "%s step %s was decided by another user first",
                request.pr_number,
                request.current_step,
            )
            raise InvalidTransition(
                f"{request.pr_number} step {request.current_step} has already been decided"
            )

        await self._repository.add_approval(outcome.approval)
        await self._repository.add_audit_entry(outcome.audit_entry)

        admin = await self._repository.find_admin()
        for notification in fan_out(
            outcome.request, outcome.notification_type, admin, self._id_generator, now
        ):
            await self._repository.add_notification(notification)

        await self._repository.commit()

        logger.info(
            "PR %s step %s %s by %s",
            request.pr_number,
            request.current_step,
            decision.value,
            actor.name,
        )
        return outcome.request


class GetPurchaseRequestUseCase:
    def __init__(self, repository: PurchaseRequestRepository) -> None:
        self._repository = repository

    async def execute(self, pr_id: str, current_user: Optional[User]) -> PurchaseRequest:
        if current_user is None:
            raise NoCurrentUserError("No current user is set")

        request = await self._repository.get_request(pr_id)
        if request is None:
            raise NotFoundError("Purchase request not found")
        if not can_view(current_user, request):
            raise PermissionDenied("You are not allowed to view this request")
        return request


class ListPurchaseRequestsUseCase:
    def __init__(
        self,
        repository: PurchaseRequestRepository,
        users: UserRepository,
    ) -> None:
        self._repository = repository
        self._users = users

    async def execute(
        self,
        query: ListPurchaseRequestsQuery,
        current_user: Optional[User],
    ) -> Sequence[PurchaseRequest]:
        if current_user is None:
            return []
        subject = await _resolve_subject(self._users, current_user, query.user_id)
        filters = RequestFilters(status=query.status, search=query.search)
        return await self._repository.list_requests(scope_for(subject), filters)


class ListNotificationsUseCase:
    def __init__(
        self,
        repository: PurchaseRequestRepository,
        users: UserRepository,
    ) -> None:
        self._repository = repository
        self._users = users

    async def execute(
        self,
        current_user: Optional[User],
        user_id: Optional[str] = None,
    ) -> Sequence[Notification]:
        if current_user is None:
            return []
        subject = await _resolve_subject(self._users, current_user, user_id)
        notifications = await self._repository.list_notifications(subject.id)
        return sorted(notifications, key=lambda n: n.created_at, reverse=True)


class MarkNotificationReadUseCase:
    def __init__(self, repository: PurchaseRequestRepository) -> None:
        self._repository = repository

    async def execute(self, notification_id: str, current_user: Optional[User]) -> Notification:
        if current_user is None:
            raise NoCurrentUserError("No current user is set")

        notification = await self._repository.get_notification(notification_id)
        if notification is None or (
            notification.user_id != current_user.id
            and current_user.role != UserRole.ADMIN
        ):
            raise NotFoundError("Notification not found")

        if not notification.read:
            await self._repository.mark_notification_read(notification_id)
            await self._repository.commit()

        return await self._repository.get_notification(notification_id)


class GetDashboardMetricsUseCase:
    def __init__(self, repository: PurchaseRequestRepository) -> None:
        self._repository = repository

    async def execute(self, current_user: Optional[User]) -> DashboardMetrics:
        if current_user is None:
            return DashboardMetrics(
                total_prs=0,
                pending_approvals=0,
                approved_prs=0,
                rejected_prs=0,
                total_value=0,
                my_prs=0,
            )

        no_filters = RequestFilters()
        visible = await self._repository.list_requests(scope_for(current_user), no_filters)
        everything = await self._repository.list_requests(
            RequestScope(everything=True), no_filters
        )

        # Pending and "my" counts follow the user's view; the rest are company-wide.
        return DashboardMetrics(
            total_prs=len(everything),
            pending_approvals=sum(1 for pr in visible if pr.status == PRStatus.PENDING),
            approved_prs=sum(1 for pr in everything if pr.status == PRStatus.APPROVED),
            rejected_prs=sum(1 for pr in everything if pr.status == PRStatus.REJECTED),
            total_value=sum(pr.total_amount for pr in everything),
            my_prs=len(visible),
        )
