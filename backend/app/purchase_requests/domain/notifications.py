from dataclasses import replace
from datetime import datetime
from typing import Callable, List, Optional

from app.purchase_requests.domain.models import Notification, NotificationType, PurchaseRequest
from app.users.domain.models import User


def notification_title(type_: NotificationType, pr_number: str) -> str:
    if type_ == NotificationType.PR_SUBMITTED:
        return f"{pr_number} Submitted"
    if type_ == NotificationType.PR_APPROVED:
        return f"{pr_number} Approved"
    if type_ == NotificationType.PR_REJECTED:
        return f"{pr_number} Rejected"
    if type_ == NotificationType.PR_PENDING_APPROVAL:
        return f"{pr_number} Pending Approval"
    return f"{pr_number} Update"


def notification_message(type_: NotificationType, pr: PurchaseRequest) -> str:
    if type_ == NotificationType.PR_SUBMITTED:
        return (
            f"Purchase request submitted by {pr.requester_name} "
            f"for ${pr.total_amount:.2f}"
        )
    if type_ == NotificationType.PR_APPROVED:
        return "Purchase request has been fully approved"
    if type_ == NotificationType.PR_REJECTED:
        return "Purchase request has been rejected"
    if type_ == NotificationType.PR_PENDING_APPROVAL:
        return f"Purchase request is pending approval at step {pr.current_step}"
    return "Purchase request updated"


def fan_out(
    pr: PurchaseRequest,
    type_: NotificationType,
    admin: Optional[User],
    id_generator: Callable[[], str],
    now: datetime,
) -> List[Notification]:
    """Build the requester's notification plus an admin copy when the admin is someone else."""
    notification = Notification(
        id=id_generator(),
        user_id=pr.requester_id,
        type=type_,
        title=notification_title(type_, pr.pr_number),
        message=notification_message(type_, pr),
        pr_id=pr.id,
        pr_number=pr.pr_number,
        created_at=now,
    )
    notifications = [notification]

    if admin is not None and admin.id != pr.requester_id:
        notifications.append(replace(notification, id=id_generator(), user_id=admin.id))

    return notifications
